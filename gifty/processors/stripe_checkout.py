import asyncio
from typing import Any, Dict, Optional

import stripe
from loguru import logger

from gifty.core.settings import Settings
from gifty.processors.base import PaymentProcessor, PaymentSession


SESSION_EXPAND = ["payment_intent", "customer"]


def _field(obj: Any, name: str) -> Any:
    """Read a field from a StripeObject, a plain dict, or an unexpanded id."""
    if obj is None or isinstance(obj, str):
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    try:
        return obj[name]
    except (KeyError, TypeError):
        return getattr(obj, name, None)


def _id_of(obj: Any) -> Optional[str]:
    """Stripe returns either the id string or the expanded object."""
    if obj is None:
        return None
    if isinstance(obj, str):
        return obj
    return _field(obj, "id")


def _metadata(obj: Any) -> Dict[str, str]:
    raw = _field(obj, "metadata") or {}
    try:
        items = raw.items()
    except AttributeError:
        return {}
    return {str(k): str(v) for k, v in items if v is not None}


def to_payment_session(session: Any) -> PaymentSession:
    """Flatten a Stripe checkout.Session into a PaymentSession."""
    payment_intent = _field(session, "payment_intent")
    amount_total = _field(session, "amount_total")

    return PaymentSession(
        id=_field(session, "id"),
        status=_field(session, "status"),
        payment_status=_field(session, "payment_status"),
        payment_intent_id=_id_of(payment_intent),
        amount_total=int(amount_total) if amount_total is not None else None,
        currency=_field(session, "currency"),
        customer_details_email=_field(_field(session, "customer_details"), "email"),
        customer_email=_field(session, "customer_email"),
        customer_object_email=_field(_field(session, "customer"), "email"),
        receipt_email=_field(payment_intent, "receipt_email"),
        metadata=_metadata(session),
    )


class StripeCheckoutProcessor(PaymentProcessor):
    """
    Reads Stripe Checkout sessions.
    The API key is passed per request; the global stripe.api_key is never set.
    """

    def __init__(self, api_key: str, api_version: Optional[str] = None):
        self._api_key = api_key
        self._api_version = api_version

    @classmethod
    def from_settings(cls, settings: Settings) -> "StripeCheckoutProcessor":
        if not settings.stripe_secret_key:
            logger.warning("STRIPE_SECRET_KEY is not set. Session lookups will fail.")
        return cls(settings.stripe_secret_key, settings.stripe_api_version)

    @property
    def processor_name(self) -> str:
        return "stripe"

    def _retrieve(self, session_id: str):
        params = {"expand": SESSION_EXPAND, "api_key": self._api_key}
        if self._api_version:
            params["stripe_version"] = self._api_version
        return stripe.checkout.Session.retrieve(session_id, **params)

    async def retrieve_session(self, session_id: str) -> Optional[PaymentSession]:
        try:
            session = await asyncio.to_thread(self._retrieve, session_id)
        except stripe.InvalidRequestError as e:
            if e.code == "resource_missing":
                logger.info("Stripe checkout session not found", session_id=session_id)
                return None
            raise

        payment_session = to_payment_session(session)
        logger.debug(
            "Retrieved Stripe checkout session",
            session_id=session_id,
            status=payment_session.status,
            payment_intent_id=payment_session.payment_intent_id,
        )
        return payment_session
