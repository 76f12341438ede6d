"""
Gift record resolver.

Finds the gift_cards row issued for a checkout session. The fallback order is
declared once, as a versioned schema adapter: an ordered list of probe
strategies, each naming the candidate columns it tries. The first match in
declared order wins.

1. session         - the checkout session id itself
2. payment_intent  - the intent id read from the processor's session
3. email           - every email found on the processor's session, compared
                      case-insensitively

The processor session is fetched lazily, at most once, and only when the
session probes miss.
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple

from loguru import logger

from gifty.errors import MissingColumnError
from gifty.processors.base import PaymentProcessor, PaymentSession
from gifty.services.normalizer import (
    GiftRecord,
    SESSION_ID_FIELDS,
    PAYMENT_INTENT_FIELDS,
    normalize_gift_row,
)
from gifty.services.record_store import RecordStore


PROBE_SESSION = "session"
PROBE_PAYMENT_INTENT = "payment_intent"
PROBE_EMAIL = "email"


@dataclass(frozen=True)
class ProbeStrategy:
    kind: str
    columns: Tuple[str, ...]


@dataclass(frozen=True)
class GiftSchemaAdapter:
    version: str
    table: str
    strategies: Tuple[ProbeStrategy, ...]
    order_column: str = "created_at"


DEFAULT_SCHEMA = GiftSchemaAdapter(
    version="v1",
    table="gift_cards",
    strategies=(
        ProbeStrategy(PROBE_SESSION, SESSION_ID_FIELDS),
        ProbeStrategy(PROBE_PAYMENT_INTENT, PAYMENT_INTENT_FIELDS),
        ProbeStrategy(
            PROBE_EMAIL,
            ("recipient_email", "buyer_email", "purchaser_email", "customer_email", "email"),
        ),
    ),
)


class Resolution:
    def __init__(self, session_id: str):
        self.session_id = session_id
        self.record: Optional[GiftRecord] = None
        self.matched_by: Optional[Tuple[str, str]] = None
        self.payment_session: Optional[PaymentSession] = None
        self.session_fetched = False


class GiftRecordResolver:
    def __init__(
        self,
        store: RecordStore,
        processor: Optional[PaymentProcessor] = None,
        schema: GiftSchemaAdapter = DEFAULT_SCHEMA,
    ):
        self._store = store
        self._processor = processor
        self._schema = schema

    async def resolve(self, session_id: str) -> Optional[GiftRecord]:
        return (await self.resolve_with_session(session_id)).record

    async def resolve_with_session(self, session_id: str) -> Resolution:
        if not session_id or not session_id.strip():
            raise ValueError("session_id must be a non-empty string")

        resolution = Resolution(session_id)
        for strategy in self._schema.strategies:
            values = await self._probe_values(strategy, resolution)
            if not values:
                continue
            match = self._probe(strategy, values)
            if match is not None:
                row, column = match
                resolution.record = normalize_gift_row(row)
                resolution.matched_by = (strategy.kind, column)
                logger.info(
                    "Resolved gift record",
                    session_id=session_id,
                    strategy=strategy.kind,
                    column=column,
                    schema=self._schema.version,
                )
                return resolution

        logger.info("No gift record for session", session_id=session_id)
        return resolution

    async def payment_session(self, resolution: Resolution) -> Optional[PaymentSession]:
        """Processor session for this resolution, fetched at most once."""
        if not resolution.session_fetched and self._processor is not None:
            resolution.payment_session = await self._processor.retrieve_session(resolution.session_id)
            resolution.session_fetched = True
        return resolution.payment_session

    async def _probe_values(self, strategy: ProbeStrategy, resolution: Resolution) -> List[str]:
        if strategy.kind == PROBE_SESSION:
            return [resolution.session_id]

        payment_session = await self.payment_session(resolution)
        if payment_session is None:
            return []
        if strategy.kind == PROBE_PAYMENT_INTENT:
            return [payment_session.payment_intent_id] if payment_session.payment_intent_id else []
        if strategy.kind == PROBE_EMAIL:
            return payment_session.candidate_emails()
        raise ValueError(f"Unknown probe strategy: {strategy.kind}")

    def _probe(self, strategy: ProbeStrategy, values: List[str]):
        """Try each candidate column in order; a missing column means try the next one."""
        for column in strategy.columns:
            query = self._store.table(self._schema.table)
            ignore_case = strategy.kind == PROBE_EMAIL
            try:
                if len(values) == 1:
                    query = query.eq(column, values[0], ignore_case=ignore_case)
                else:
                    query = query.in_(column, values, ignore_case=ignore_case)
                row = query.order(self._schema.order_column, desc=True).limit(1).maybe_single()
            except MissingColumnError:
                logger.debug("Probe column missing", table=self._schema.table, column=column)
                continue
            if row is not None:
                return row, column
        return None
