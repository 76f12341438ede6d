from pydantic import BaseModel
from typing import Literal, Optional


class GiftPayload(BaseModel):
    code: str
    amount: float
    currency: str
    business_name: str
    redeem_url: str
    temporary: bool = False


class FulfillSent(BaseModel):
    ok: Literal[True] = True
    status: Literal["sent", "fallback"]
    sent_to: str
    gift: GiftPayload


class FulfillPending(BaseModel):
    ok: Literal[False] = False
    status: Literal["pending"] = "pending"
    message: str


class FulfillMissingRecipient(BaseModel):
    ok: Literal[False] = False
    status: Literal["missing_recipient"] = "missing_recipient"
    message: str
    gift: Optional[GiftPayload] = None


class FulfillError(BaseModel):
    ok: Literal[False] = False
    status: Literal["error"] = "error"
    error: str
    gift: Optional[GiftPayload] = None


class GiftRecordPayload(BaseModel):
    code: str
    amount_cents: int
    amount: float
    currency: str
    buyer_email: Optional[str] = None
    recipient_email: Optional[str] = None
    business_slug: Optional[str] = None
    status: str
    created_at: Optional[str] = None
    redeemed_at: Optional[str] = None


class GiftBySessionResponse(BaseModel):
    found: bool
    gift: Optional[GiftRecordPayload] = None
