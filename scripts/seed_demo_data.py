"""
Seeds the database with demo merchants and issued gift cards.

Distribution:
- 6 businesses, one without a Stripe account
- ~60 gift cards: 70% issued, 20% redeemed, 10% voided
- Currencies: mostly USD, a few CAD/EUR
- Edge cases: cards with a recipient, cards with only a buyer, a card with
  no email at all (fulfill answers missing_recipient), cards whose checkout id
  is cs_demo_<n> so they can be polled from the terminal
"""
import sys
import os
import random
import string
from datetime import datetime, timedelta

# Allow running from project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gifty.database import engine, SessionLocal
from gifty import models

random.seed(42)

BUSINESSES = [
    ("Blue Bottle Corner", "blue-bottle-corner", "acct_1DemoBlue"),
    ("Sunset Tacos", "sunset-tacos", "acct_1DemoTacos"),
    ("Page Turner Books", "page-turner-books", "acct_1DemoBooks"),
    ("Green Leaf Spa", "green-leaf-spa", "acct_1DemoSpa"),
    ("Iron Works Gym", "iron-works-gym", "acct_1DemoGym"),
    ("Corner Bakery", "corner-bakery", None),
]
CURRENCIES = ["USD"] * 8 + ["CAD", "EUR"]
STATUSES = ["issued"] * 70 + ["redeemed"] * 20 + ["voided"] * 10
AMOUNTS_CENTS = [1000, 2500, 5000, 7500, 10000]

BASE_TIME = datetime(2025, 9, 1, 12, 0, 0)


def gift_code():
    return "GIF-" + "".join(random.choices(string.ascii_uppercase + string.digits, k=8))


def make_gift_card(business, index, buyer_email, recipient_email=None, status="issued"):
    created_at = BASE_TIME + timedelta(hours=random.uniform(0, 24 * 30))
    return models.GiftCard(
        code=gift_code(),
        business_id=business.id,
        business_slug=business.slug,
        amount_cents=random.choice(AMOUNTS_CENTS),
        currency=random.choice(CURRENCIES),
        buyer_email=buyer_email,
        recipient_email=recipient_email,
        stripe_checkout_id=f"cs_demo_{index}",
        stripe_payment_intent_id=f"pi_demo_{index}",
        status=status,
        created_at=created_at,
        redeemed_at=created_at + timedelta(days=3) if status == "redeemed" else None,
    )


def generate_businesses():
    return [
        models.Business(name=name, slug=slug, stripe_account_id=account)
        for name, slug, account in BUSINESSES
    ]


def generate_gift_cards(businesses):
    cards = []
    for i in range(60):
        business = random.choice(businesses)
        buyer = f"buyer{i:03d}@example.com"
        recipient = f"friend{i:03d}@example.com" if random.random() < 0.5 else None
        cards.append(make_gift_card(business, i, buyer, recipient, random.choice(STATUSES)))

    # No deliverable email anywhere
    cards.append(make_gift_card(businesses[0], 900, buyer_email=None))
    return cards


def main():
    print("Creating database tables...")
    models.Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        existing = db.query(models.Business).count()
        if existing > 0:
            print(f"Database already has {existing} businesses. Skipping seed.")
            return

        print("Generating businesses...")
        businesses = generate_businesses()
        db.add_all(businesses)
        db.flush()

        print("Generating gift cards...")
        db.add_all(generate_gift_cards(businesses))
        db.commit()

        count = db.query(models.GiftCard).count()
        print(f"Successfully seeded {len(businesses)} businesses and {count} gift cards.")

        from sqlalchemy import func as sqlfunc
        statuses = db.query(
            models.GiftCard.status,
            sqlfunc.count(models.GiftCard.id)
        ).group_by(models.GiftCard.status).all()
        print("\nStatus distribution:")
        for status, cnt in statuses:
            print(f"  {status}: {cnt}")

    finally:
        db.close()


if __name__ == "__main__":
    main()
