"""Gift email delivery."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape
from loguru import logger

from gifty.core.settings import Settings
from gifty.errors import DeliveryFailure


RESEND_API_URL = "https://api.resend.com/emails"
TEST_SENDER = "Gifty Test <onboarding@resend.dev>"

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)


@dataclass
class GiftEmail:
    """Template props for the gift email."""

    code: str
    amount: float
    currency: str
    business_name: str
    redeem_url: str
    qr_url: str
    message: Optional[str] = None


@dataclass
class OutboundEmail:
    sender: str
    to: str
    subject: str
    html: str


class EmailBackend(Protocol):
    async def send(self, email: OutboundEmail) -> Dict[str, Any]:
        ...


def format_money(amount: float, currency: str) -> str:
    if currency.upper() == "USD":
        return f"${amount:,.2f}"
    return f"{amount:,.2f} {currency.upper()}"


def render_gift_email(props: GiftEmail) -> str:
    template = _env.get_template("gift_email.html")
    return template.render(
        amount_display=format_money(props.amount, props.currency),
        business_name=props.business_name,
        message=props.message,
        code=props.code,
        qr_url=props.qr_url,
        redeem_url=props.redeem_url,
    )


def resolve_sender(settings: Settings) -> str:
    """Verified sender in prod mode, the Resend onboarding sender otherwise."""
    if settings.resend_mode == "prod":
        if settings.resend_from:
            return settings.resend_from
        logger.warning("RESEND_MODE=prod but RESEND_FROM is not set. Falling back to test sender.")
    return TEST_SENDER


class ResendEmailBackend:
    """Sends through the Resend HTTP API."""

    def __init__(
        self,
        api_key: str,
        *,
        timeout: float = 10.0,
        api_url: str = RESEND_API_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            logger.warning("RESEND_API_KEY is not set. Emails will fail.")
        self._api_key = api_key
        self._timeout = timeout
        self._api_url = api_url
        self._transport = transport

    async def send(self, email: OutboundEmail) -> Dict[str, Any]:
        payload = {
            "from": email.sender,
            "to": [email.to],
            "subject": email.subject,
            "html": email.html,
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._api_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise DeliveryFailure(f"Resend request failed: {e}") from e

        if response.status_code >= 400:
            raise DeliveryFailure(
                f"Resend rejected email ({response.status_code}): {response.text}",
                status_code=response.status_code,
            )
        return response.json()


@dataclass
class InMemoryEmailBackend:
    """Keeps outbound emails in memory (tests, local development)."""

    messages: List[OutboundEmail] = field(default_factory=list)

    async def send(self, email: OutboundEmail) -> Dict[str, Any]:
        self.messages.append(email)
        return {"id": f"mem_{len(self.messages)}"}


class GiftNotifier:
    """Renders the gift email and hands it to the configured backend."""

    def __init__(self, backend: EmailBackend, sender: str = TEST_SENDER) -> None:
        self._backend = backend
        self._sender = sender

    @classmethod
    def from_settings(cls, settings: Settings) -> "GiftNotifier":
        backend = ResendEmailBackend(settings.resend_api_key, timeout=settings.resend_timeout_seconds)
        return cls(backend, resolve_sender(settings))

    async def send(self, to: str, props: GiftEmail) -> Dict[str, Any]:
        email = OutboundEmail(
            sender=self._sender,
            to=to,
            subject=f"Your Gifty for {props.business_name} - code {props.code}",
            html=render_gift_email(props),
        )
        result = await self._backend.send(email)
        logger.info("Gift email sent", to=to, code=props.code, email_id=result.get("id"))
        return result
