from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from gifty.dependencies import get_orchestrator
from gifty.schemas.requests import FulfillRequest
from gifty.schemas.responses import (
    FulfillError,
    FulfillMissingRecipient,
    FulfillPending,
    FulfillSent,
    GiftPayload,
)
from gifty.services.fulfillment import (
    Error,
    FallbackIssued,
    Found,
    FulfillmentOrchestrator,
    FulfillmentOutcome,
    GiftView,
    MissingRecipient,
    Pending,
)

router = APIRouter()


def _gift_payload(gift: GiftView):
    if gift is None:
        return None
    return GiftPayload(
        code=gift.code,
        amount=gift.amount,
        currency=gift.currency,
        business_name=gift.business_name,
        redeem_url=gift.redeem_url,
        temporary=gift.temporary,
    )


def outcome_response(outcome: FulfillmentOutcome) -> JSONResponse:
    """Outcome → (HTTP status, body). 200 sent, 202 pending, 409 no recipient, 500 error."""
    if isinstance(outcome, (Found, FallbackIssued)):
        status = "sent" if isinstance(outcome, Found) else "fallback"
        body = FulfillSent(status=status, sent_to=outcome.sent_to, gift=_gift_payload(outcome.gift))
        return JSONResponse(status_code=200, content=body.model_dump())
    if isinstance(outcome, Pending):
        return JSONResponse(status_code=202, content=FulfillPending(message=outcome.reason).model_dump())
    if isinstance(outcome, MissingRecipient):
        body = FulfillMissingRecipient(message=outcome.message, gift=_gift_payload(outcome.gift))
        return JSONResponse(status_code=409, content=body.model_dump(exclude_none=True))
    if isinstance(outcome, Error):
        body = FulfillError(error=outcome.message, gift=_gift_payload(outcome.gift))
        return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))
    raise TypeError(f"Unknown fulfillment outcome: {outcome!r}")


@router.post(
    "/fulfill",
    responses={
        200: {"model": FulfillSent},
        202: {"model": FulfillPending},
        409: {"model": FulfillMissingRecipient},
        500: {"model": FulfillError},
    },
)
async def fulfill(request: FulfillRequest, orchestrator: FulfillmentOrchestrator = Depends(get_orchestrator)):
    """
    Deliver the gift for a completed checkout session.

    - Looks up the gift card written by the webhook (tolerating schema drift)
    - Falls back to a temporary TMP- code when payment is complete but no card exists yet
    - Emails the recipient (or buyer) on every call
    - Reports pending while the payment is unconfirmed; the success page polls
    """
    outcome = await orchestrator.fulfill(request.session_id)
    return outcome_response(outcome)
