from fastapi import APIRouter, Depends, HTTPException, Query

from gifty.dependencies import get_record_store
from gifty.errors import RecordStoreError
from gifty.schemas.responses import GiftBySessionResponse, GiftRecordPayload
from gifty.services.record_store import RecordStore
from gifty.services.resolver import GiftRecordResolver

router = APIRouter()


@router.get("/by-session", response_model=GiftBySessionResponse)
async def gift_by_session(
    session_id: str = Query(..., min_length=1),
    store: RecordStore = Depends(get_record_store),
):
    """
    Look up the issued gift card for a checkout session.

    Read-only: probes the session columns only, never calls the payment processor
    and never sends email.
    """
    resolver = GiftRecordResolver(store)
    try:
        record = await resolver.resolve(session_id)
    except (RecordStoreError, ValueError) as e:
        raise HTTPException(status_code=500, detail=str(e))

    if record is None:
        return GiftBySessionResponse(found=False)

    return GiftBySessionResponse(
        found=True,
        gift=GiftRecordPayload(
            code=record.code,
            amount_cents=record.amount_cents,
            amount=record.amount,
            currency=record.currency,
            buyer_email=record.buyer_email,
            recipient_email=record.recipient_email,
            business_slug=record.business_slug,
            status=record.status,
            created_at=record.created_at,
            redeemed_at=record.redeemed_at,
        ),
    )
