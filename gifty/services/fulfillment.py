"""
Checkout fulfillment.

Called by the success page once per poll:
1. Resolve the gift record for the checkout session
2. No record yet: check the processor session
   - not complete → Pending (the poller retries)
   - complete → temporary TMP- gift so the buyer is not stuck
3. Pick the delivery email (recipient, buyer, generic)
4. Send the gift email

Nothing is written to the record store. The temporary code is derived from the
session id and exists only in the response and the email; the webhook still
issues the permanent card.

Every call re-sends the email. There is no dedupe: the poller stops at the
first terminal outcome, and a client that keeps calling gets one email per call.
"""
from dataclasses import dataclass
from typing import Optional, Union

from loguru import logger

from gifty.errors import NotYetAvailable, RecipientUnknown
from gifty.helpers import qr_image_url, redeem_url
from gifty.processors.base import PaymentSession
from gifty.services.business import DEFAULT_BUSINESS_NAME, lookup_business_name
from gifty.services.normalizer import GiftRecord, normalize_currency, to_major_units
from gifty.services.notifier import GiftEmail, GiftNotifier
from gifty.services.record_store import RecordStore
from gifty.services.resolver import GiftRecordResolver


TEMP_CODE_PREFIX = "TMP-"
TEMP_CODE_LENGTH = 8

PENDING_MESSAGE = "Payment is still being confirmed. Please wait a moment."
MISSING_RECIPIENT_MESSAGE = "No recipient or buyer email found for this gift."


def temporary_code(session_id: str) -> str:
    """TMP- plus the last 8 characters of the session id, upper-cased."""
    return f"{TEMP_CODE_PREFIX}{session_id[-TEMP_CODE_LENGTH:].upper()}"


def is_temporary_code(code: str) -> bool:
    return code.startswith(TEMP_CODE_PREFIX)


@dataclass(frozen=True)
class GiftView:
    """What the buyer gets to see: a real record or a temporary fallback."""

    code: str
    amount: float
    currency: str
    business_name: str
    redeem_url: str
    temporary: bool = False


@dataclass(frozen=True)
class Found:
    gift: GiftView
    sent_to: str


@dataclass(frozen=True)
class FallbackIssued:
    gift: GiftView
    sent_to: str


@dataclass(frozen=True)
class Pending:
    reason: str


@dataclass(frozen=True)
class MissingRecipient:
    message: str
    gift: Optional[GiftView] = None


@dataclass(frozen=True)
class Error:
    message: str
    gift: Optional[GiftView] = None


FulfillmentOutcome = Union[Found, FallbackIssued, Pending, MissingRecipient, Error]


class FulfillmentAttempt:
    """State of a single fulfill() call. Never stored."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        self.gift: Optional[GiftView] = None
        self.outcome: Optional[str] = None


class FulfillmentOrchestrator:
    def __init__(
        self,
        store: RecordStore,
        resolver: GiftRecordResolver,
        notifier: GiftNotifier,
        public_base_url: str,
    ):
        self._store = store
        self._resolver = resolver
        self._notifier = notifier
        self._public_base_url = public_base_url

    async def fulfill(self, session_id: str) -> FulfillmentOutcome:
        """
        Run one reconciliation pass for a checkout session.
        Never raises. NotYetAvailable and RecipientUnknown become Pending and
        MissingRecipient; any other failure becomes Error, with the gift attached
        when one was located.
        """
        attempt = FulfillmentAttempt(session_id)
        try:
            outcome = await self._fulfill(attempt)
        except NotYetAvailable as e:
            outcome = Pending(reason=str(e))
        except RecipientUnknown as e:
            outcome = MissingRecipient(message=str(e), gift=attempt.gift)
        except Exception as e:
            logger.exception("Fulfillment failed", session_id=session_id)
            outcome = Error(message=str(e) or e.__class__.__name__, gift=attempt.gift)

        attempt.outcome = type(outcome).__name__
        logger.info(
            "Fulfillment outcome",
            session_id=session_id,
            outcome=attempt.outcome,
            code=attempt.gift.code if attempt.gift else None,
        )
        return outcome

    async def _fulfill(self, attempt: FulfillmentAttempt) -> FulfillmentOutcome:
        resolution = await self._resolver.resolve_with_session(attempt.session_id)

        if resolution.record is not None:
            record = resolution.record
            attempt.gift = self._gift_from_record(record)
            to = record.delivery_email
            if not to:
                raise RecipientUnknown(MISSING_RECIPIENT_MESSAGE)
            await self._deliver(to, attempt.gift)
            return Found(gift=attempt.gift, sent_to=to)

        payment_session = await self._resolver.payment_session(resolution)
        if payment_session is None:
            raise NotYetAvailable("Checkout session not found yet. " + PENDING_MESSAGE)
        if not payment_session.is_complete:
            raise NotYetAvailable(PENDING_MESSAGE)

        to = payment_session.deliverable_email()
        if not to:
            raise RecipientUnknown(MISSING_RECIPIENT_MESSAGE)

        attempt.gift = self._fallback_gift(attempt.session_id, payment_session)
        await self._deliver(to, attempt.gift, message=payment_session.metadata.get("gift_message"))
        return FallbackIssued(gift=attempt.gift, sent_to=to)

    async def _deliver(self, to: str, gift: GiftView, message: Optional[str] = None):
        props = GiftEmail(
            code=gift.code,
            amount=gift.amount,
            currency=gift.currency,
            business_name=gift.business_name,
            redeem_url=gift.redeem_url,
            qr_url=qr_image_url(self._public_base_url, gift.redeem_url),
            message=message,
        )
        return await self._notifier.send(to, props)

    def _gift_from_record(self, record: GiftRecord) -> GiftView:
        business_name = record.business_name or lookup_business_name(
            self._store, business_id=record.business_id, slug=record.business_slug
        )
        return GiftView(
            code=record.code,
            amount=record.amount,
            currency=record.currency,
            business_name=business_name or DEFAULT_BUSINESS_NAME,
            redeem_url=redeem_url(self._public_base_url, record.code),
        )

    def _fallback_gift(self, session_id: str, payment_session: PaymentSession) -> GiftView:
        metadata = payment_session.metadata
        amount_cents = payment_session.amount_total
        if amount_cents is None:
            try:
                amount_cents = int(metadata.get("amount_cents") or 0)
            except ValueError:
                amount_cents = 0

        business_name = metadata.get("business_name") or lookup_business_name(
            self._store, business_id=metadata.get("business_id")
        )
        code = temporary_code(session_id)
        return GiftView(
            code=code,
            amount=to_major_units(max(amount_cents, 0)),
            currency=normalize_currency(payment_session.currency),
            business_name=business_name or DEFAULT_BUSINESS_NAME,
            redeem_url=redeem_url(self._public_base_url, code),
            temporary=True,
        )
