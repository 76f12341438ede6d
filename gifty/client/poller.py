"""
Success-page poller.

Drives POST /api/checkout/fulfill until the gift is delivered or a terminal
failure is known:

- pending            → wait min(max_delay, step * attempt + base), call again
- ok                 → sent (terminal)
- missing_recipient  → terminal, the gift is still looked up so it can be shown
- anything else      → error (terminal), recoverable only through retry()

At most max_attempts calls per run. cancel() stops the pending timer and the
in-flight request when the page goes away. Overlapping runs are not ordered:
whichever renders last wins.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

from loguru import logger

from gifty.core.settings import Settings


IDLE = "idle"
SENDING = "sending"
PENDING = "pending"
SENT = "sent"
MISSING_RECIPIENT = "missing_recipient"
ERROR = "error"

TERMINAL_STATES = frozenset({SENT, MISSING_RECIPIENT, ERROR})

TIMEOUT_MESSAGE = "Timed out waiting for the gift to be ready. Please try again shortly."


class FulfillmentApi(Protocol):
    async def fulfill_once(self, session_id: str) -> Dict[str, Any]:
        ...

    async def gift_by_session(self, session_id: str) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class PollState:
    status: str
    attempt: int = 0
    max_attempts: int = 10
    sent_to: Optional[str] = None
    gift: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def terminal(self) -> bool:
        return self.status in TERMINAL_STATES


def backoff_delay(attempt: int, base: float = 0.5, step: float = 0.5, max_delay: float = 5.0) -> float:
    """Seconds to wait after the given (1-based) pending attempt; never decreases."""
    return min(max_delay, step * attempt + base)


class FulfillmentPoller:
    def __init__(
        self,
        client: FulfillmentApi,
        *,
        max_attempts: int = 10,
        base_delay: float = 0.5,
        delay_step: float = 0.5,
        max_delay: float = 5.0,
        on_state: Optional[Callable[[PollState], None]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._client = client
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._delay_step = delay_step
        self._max_delay = max_delay
        self._on_state = on_state
        self._sleep = sleep
        self._state = PollState(status=IDLE, max_attempts=max_attempts)
        self._task: Optional[asyncio.Task] = None
        self._session_id: Optional[str] = None
        self.calls = 0

    @classmethod
    def from_settings(cls, client: FulfillmentApi, settings: Settings, **kwargs) -> "FulfillmentPoller":
        return cls(
            client,
            max_attempts=settings.poller_max_attempts,
            base_delay=settings.poller_base_delay,
            delay_step=settings.poller_delay_step,
            max_delay=settings.poller_max_delay,
            **kwargs,
        )

    @property
    def state(self) -> PollState:
        return self._state

    def _render(self, state: PollState) -> PollState:
        self._state = state
        if self._on_state is not None:
            self._on_state(state)
        return state

    def delay_for(self, attempt: int) -> float:
        return backoff_delay(attempt, self._base_delay, self._delay_step, self._max_delay)

    async def run(self, session_id: str) -> PollState:
        """Poll until a terminal state; returns it."""
        if not session_id:
            return self._render(PollState(
                status=ERROR, max_attempts=self._max_attempts, error="Missing session id.",
            ))

        self._session_id = session_id
        self.calls = 0
        state = self._render(PollState(status=SENDING, max_attempts=self._max_attempts))

        for attempt in range(1, self._max_attempts + 1):
            state = self._render(replace(state, attempt=attempt))
            self.calls += 1
            result = await self._client.fulfill_once(session_id)

            if result.get("ok"):
                return self._render(replace(
                    state, status=SENT, sent_to=result.get("sent_to"), gift=result.get("gift"),
                ))

            status = result.get("status")
            if status == MISSING_RECIPIENT:
                gift = result.get("gift") or await self._lookup_gift(session_id)
                return self._render(replace(
                    state,
                    status=MISSING_RECIPIENT,
                    gift=gift,
                    error=result.get("message") or "Missing recipient email on gift.",
                ))

            if status == PENDING:
                state = self._render(replace(state, status=PENDING))
                if attempt < self._max_attempts:
                    await self._sleep(self.delay_for(attempt))
                continue

            return self._render(replace(
                state, status=ERROR, error=result.get("error") or result.get("message") or "Unknown error",
            ))

        logger.info("Poller gave up", session_id=session_id, attempts=self.calls)
        return self._render(replace(state, status=ERROR, error=TIMEOUT_MESSAGE))

    async def _lookup_gift(self, session_id: str) -> Optional[Dict[str, Any]]:
        data = await self._client.gift_by_session(session_id)
        if data.get("found") and data.get("gift"):
            return data["gift"]
        return None

    def start(self, session_id: str) -> asyncio.Task:
        """Run in the background; requires a running event loop."""
        self.cancel()
        self._session_id = session_id
        self._task = asyncio.create_task(self.run(session_id))
        return self._task

    def cancel(self) -> None:
        """Abandon polling: cancels the pending sleep or in-flight request."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def retry(self) -> asyncio.Task:
        """Manual retry: reset to attempt 1 and poll again."""
        if not self._session_id:
            raise RuntimeError("Nothing to retry: poller was never started")
        self.cancel()
        self._render(PollState(status=IDLE, max_attempts=self._max_attempts))
        return self.start(self._session_id)
