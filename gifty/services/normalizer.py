"""
Normalizes heterogeneous gift_cards rows to a standard GiftRecord.

Deployments disagree on column names, amount units, status vocabulary and
timestamp formats. This module maps all of them to one canonical form.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, Any, Optional

from gifty.helpers import is_valid_email


DEFAULT_CURRENCY = "USD"

# Minor units (cents) first, legacy major-unit columns after
AMOUNT_CENTS_FIELDS = ("amount_cents", "initial_amount_cents", "remaining_amount_cents", "value_cents")
AMOUNT_MAJOR_FIELDS = ("amount", "amount_usd")

SESSION_ID_FIELDS = (
    "session_id",
    "provider_session_id",
    "order_id",
    "checkout_session_id",
    "stripe_checkout_id",
)
PAYMENT_INTENT_FIELDS = (
    "payment_intent_id",
    "provider_payment_intent_id",
    "stripe_payment_intent_id",
    "payment_intent",
)
BUYER_EMAIL_FIELDS = ("buyer_email", "purchaser_email", "customer_email")
CREATED_AT_FIELDS = ("created_at", "issued_at", "inserted_at")

# Standard status vocabulary
NORMALIZED_STATUSES = {
    "issued": "issued",
    "active": "issued",
    "paid": "issued",
    "unused": "issued",
    "redeemed": "redeemed",
    "used": "redeemed",
    "void": "voided",
    "voided": "voided",
    "canceled": "voided",
    "cancelled": "voided",
    "refunded": "voided",
}


@dataclass(frozen=True)
class GiftRecord:
    code: str
    amount_cents: int
    currency: str = DEFAULT_CURRENCY
    buyer_email: Optional[str] = None
    recipient_email: Optional[str] = None
    email: Optional[str] = None
    session_id: Optional[str] = None
    payment_intent_id: Optional[str] = None
    business_id: Optional[str] = None
    business_slug: Optional[str] = None
    business_name: Optional[str] = None
    status: str = "issued"
    created_at: Optional[str] = None
    redeemed_at: Optional[str] = None

    @property
    def amount(self) -> float:
        return to_major_units(self.amount_cents)

    @property
    def delivery_email(self) -> Optional[str]:
        """First valid address among recipient, buyer and the generic email column."""
        for email in (self.recipient_email, self.buyer_email, self.email):
            if is_valid_email(email):
                return email.strip()
        return None


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _first(row: Dict[str, Any], fields) -> Optional[str]:
    for field in fields:
        value = _clean(row.get(field))
        if value:
            return value
    return None


def to_major_units(amount_cents: int) -> float:
    return float((Decimal(amount_cents) / 100).quantize(Decimal("0.01")))


def normalize_currency(value: Any) -> str:
    """ISO 4217 code in upper case, USD when absent or unrecognizable."""
    text = _clean(value)
    if text and len(text) == 3 and text.isalpha():
        return text.upper()
    return DEFAULT_CURRENCY


def normalize_amount_cents(row: Dict[str, Any]) -> int:
    """
    Integer minor units from whichever amount column the row carries.

    Raises:
        ValueError: if the amount is negative
    """
    cents = None
    for field in AMOUNT_CENTS_FIELDS:
        value = row.get(field)
        if value is None:
            continue
        try:
            cents = int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
            break
        except (InvalidOperation, ValueError, OverflowError):
            continue

    if cents is None:
        for field in AMOUNT_MAJOR_FIELDS:
            value = row.get(field)
            if value is None:
                continue
            try:
                major = Decimal(str(value))
                cents = int((major * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
                break
            except (InvalidOperation, ValueError, OverflowError):
                continue

    if cents is None:
        return 0
    if cents < 0:
        raise ValueError(f"Gift amount must be non-negative, got {cents}")
    return cents


def normalize_status(value: Any) -> str:
    text = _clean(value)
    if not text:
        return "issued"
    return NORMALIZED_STATUSES.get(text.lower(), text.lower())


def normalize_timestamp(value: Any) -> Optional[str]:
    """datetime, epoch seconds or ISO8601 string → ISO8601."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()
        except (ValueError, OverflowError, OSError):
            return None
    text = str(value).strip()
    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return text
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def normalize_gift_row(row: Dict[str, Any]) -> GiftRecord:
    """
    Maps a raw gift_cards row to a GiftRecord.

    Args:
        row: column → value mapping as returned by the record store

    Returns:
        GiftRecord with amount in cents, canonical currency and status
    """
    code = _clean(row.get("code"))
    if not code:
        raise ValueError("Gift row has no code")

    created_at = None
    for field in CREATED_AT_FIELDS:
        if row.get(field) is not None:
            created_at = normalize_timestamp(row.get(field))
            break

    return GiftRecord(
        code=code,
        amount_cents=normalize_amount_cents(row),
        currency=normalize_currency(row.get("currency")),
        buyer_email=_first(row, BUYER_EMAIL_FIELDS),
        recipient_email=_clean(row.get("recipient_email")),
        email=_clean(row.get("email")),
        session_id=_first(row, SESSION_ID_FIELDS),
        payment_intent_id=_first(row, PAYMENT_INTENT_FIELDS),
        business_id=_clean(row.get("business_id")),
        business_slug=_clean(row.get("business_slug")),
        business_name=_clean(row.get("business_name")),
        status=normalize_status(row.get("status")),
        created_at=created_at,
        redeemed_at=normalize_timestamp(row.get("redeemed_at")),
    )
