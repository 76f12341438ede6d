from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from gifty.database import Base
import uuid


def generate_id():
    return str(uuid.uuid4())


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Business(Base):
    __tablename__ = "businesses"

    id = Column(String, primary_key=True, default=generate_id)
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True, index=True)
    stripe_account_id = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class GiftCard(Base):
    """
    Current gift_cards layout, written by the Stripe webhook.

    Older deployments carry other column names (session_id, amount, purchaser_email...);
    the resolver reads this table through reflection and never assumes this exact shape.
    """
    __tablename__ = "gift_cards"

    id = Column(String, primary_key=True, default=generate_id)
    code = Column(String, nullable=False, unique=True, index=True)
    business_id = Column(String, ForeignKey("businesses.id"), nullable=True, index=True)
    business_slug = Column(String, nullable=True)
    amount_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    buyer_email = Column(String, nullable=True, index=True)
    recipient_email = Column(String, nullable=True, index=True)
    stripe_checkout_id = Column(String, nullable=True, index=True)
    stripe_payment_intent_id = Column(String, nullable=True, index=True)
    status = Column(String, nullable=False, default="issued")
    created_at = Column(DateTime, nullable=False, default=utcnow)
    redeemed_at = Column(DateTime, nullable=True)
