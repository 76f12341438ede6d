"""
Tests for gifty/services/notifier.py.

The Resend API is replaced by httpx.MockTransport; nothing leaves the process.
"""
import json

import httpx
import pytest

from gifty.core.settings import Settings
from gifty.errors import DeliveryFailure
from gifty.services.notifier import (
    GiftEmail,
    GiftNotifier,
    InMemoryEmailBackend,
    OutboundEmail,
    ResendEmailBackend,
    TEST_SENDER,
    format_money,
    render_gift_email,
    resolve_sender,
)


def gift_props(**overrides):
    props = dict(
        code="GIF-AB12CD34",
        amount=25.0,
        currency="USD",
        business_name="Sunset Tacos",
        redeem_url="https://gifty.test/card/GIF-AB12CD34",
        qr_url="https://gifty.test/api/qr?data=https%3A%2F%2Fgifty.test%2Fcard%2FGIF-AB12CD34",
    )
    props.update(overrides)
    return GiftEmail(**props)


class TestRendering:
    def test_contains_code_amount_business_and_links(self):
        html = render_gift_email(gift_props())
        assert "GIF-AB12CD34" in html
        assert "$25.00" in html
        assert "Sunset Tacos" in html
        assert "https://gifty.test/card/GIF-AB12CD34" in html
        assert "/api/qr?data=" in html

    def test_message_is_escaped(self):
        html = render_gift_email(gift_props(message="<script>alert(1)</script>"))
        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_no_message_block_without_message(self):
        assert "blockquote" not in render_gift_email(gift_props())

    def test_format_money(self):
        assert format_money(25.0, "USD") == "$25.00"
        assert format_money(1234.5, "eur") == "1,234.50 EUR"


class TestSender:
    def test_test_mode_uses_onboarding_sender(self):
        assert resolve_sender(Settings(resend_mode="test", resend_from="Gifty <hi@gifty.app>")) == TEST_SENDER

    def test_prod_mode_uses_configured_sender(self):
        assert resolve_sender(Settings(resend_mode="prod", resend_from="Gifty <hi@gifty.app>")) == "Gifty <hi@gifty.app>"

    def test_prod_mode_without_sender_falls_back(self):
        assert resolve_sender(Settings(resend_mode="prod", resend_from=None)) == TEST_SENDER


class TestResendBackend:
    async def test_posts_payload_with_bearer_key(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "email_123"})

        backend = ResendEmailBackend("re_test_key", transport=httpx.MockTransport(handler))
        result = await backend.send(OutboundEmail(
            sender=TEST_SENDER, to="buyer@example.com", subject="Hi", html="<p>hi</p>",
        ))

        assert result == {"id": "email_123"}
        assert seen["auth"] == "Bearer re_test_key"
        assert seen["url"] == "https://api.resend.com/emails"
        assert seen["body"]["to"] == ["buyer@example.com"]
        assert seen["body"]["from"] == TEST_SENDER

    async def test_error_status_raises_delivery_failure(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(422, json={"message": "invalid to"}))
        backend = ResendEmailBackend("re_test_key", transport=transport)

        with pytest.raises(DeliveryFailure) as exc:
            await backend.send(OutboundEmail(sender=TEST_SENDER, to="x@example.com", subject="s", html="h"))
        assert exc.value.status_code == 422

    async def test_transport_error_raises_delivery_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        backend = ResendEmailBackend("re_test_key", transport=httpx.MockTransport(handler))
        with pytest.raises(DeliveryFailure, match="connection refused"):
            await backend.send(OutboundEmail(sender=TEST_SENDER, to="x@example.com", subject="s", html="h"))


class TestGiftNotifier:
    async def test_send_renders_and_returns_backend_result(self):
        mailbox = InMemoryEmailBackend()
        notifier = GiftNotifier(mailbox, sender="Gifty <hi@gifty.app>")

        result = await notifier.send("friend@example.com", gift_props())

        assert result == {"id": "mem_1"}
        sent = mailbox.messages[0]
        assert sent.to == "friend@example.com"
        assert sent.sender == "Gifty <hi@gifty.app>"
        assert sent.subject == "Your Gifty for Sunset Tacos - code GIF-AB12CD34"
        assert "GIF-AB12CD34" in sent.html
