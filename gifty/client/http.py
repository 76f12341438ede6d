"""HTTP client for the fulfillment endpoints, as used by the success page."""

from __future__ import annotations

from typing import Any, Dict

import httpx
from loguru import logger


class FulfillmentClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "FulfillmentClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fulfill_once(self, session_id: str) -> Dict[str, Any]:
        """
        One POST to /api/checkout/fulfill. The body is returned whatever the
        HTTP status; transport failures come back as an error body.
        """
        try:
            response = await self._client.post("/api/checkout/fulfill", json={"session_id": session_id})
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Fulfill request failed", session_id=session_id, error=str(e))
            return {"ok": False, "status": "error", "error": str(e) or e.__class__.__name__}

    async def gift_by_session(self, session_id: str) -> Dict[str, Any]:
        try:
            response = await self._client.get("/api/gift/by-session", params={"session_id": session_id})
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Gift lookup failed", session_id=session_id, error=str(e))
            return {"found": False}
