"""
Tests for gifty/client/http.py against httpx.MockTransport.
"""
import json

import httpx

from gifty.client.http import FulfillmentClient

BASE_URL = "https://gifty.test"


class TestFulfillOnce:
    async def test_returns_body_for_non_200_status(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(202, json={"ok": False, "status": "pending"})

        async with FulfillmentClient(BASE_URL, transport=httpx.MockTransport(handler)) as client:
            body = await client.fulfill_once("cs_test_123")

        assert body == {"ok": False, "status": "pending"}
        assert seen == {"path": "/api/checkout/fulfill", "body": {"session_id": "cs_test_123"}}

    async def test_transport_error_becomes_error_body(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with FulfillmentClient(BASE_URL, transport=httpx.MockTransport(handler)) as client:
            body = await client.fulfill_once("cs_test_123")

        assert body["ok"] is False
        assert body["status"] == "error"
        assert "connection refused" in body["error"]

    async def test_non_json_body_becomes_error_body(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(502, text="Bad Gateway"))

        async with FulfillmentClient(BASE_URL, transport=transport) as client:
            body = await client.fulfill_once("cs_test_123")

        assert body["status"] == "error"


class TestGiftBySession:
    async def test_found(self):
        def handler(request):
            assert request.url.path == "/api/gift/by-session"
            assert request.url.params["session_id"] == "cs_test_123"
            return httpx.Response(200, json={"found": True, "gift": {"code": "GIF-AB12CD34"}})

        async with FulfillmentClient(BASE_URL, transport=httpx.MockTransport(handler)) as client:
            body = await client.gift_by_session("cs_test_123")

        assert body["gift"]["code"] == "GIF-AB12CD34"

    async def test_server_error_reads_as_not_found(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"detail": "boom"}))

        async with FulfillmentClient(BASE_URL, transport=transport) as client:
            assert await client.gift_by_session("cs_test_123") == {"found": False}
