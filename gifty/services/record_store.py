"""
Read-only record store client.

Thin query builder over SQLAlchemy Core. Tables are reflected from the live
database instead of taken from gifty.models, because the gift_cards layout
differs between deployments: a filter on a column the table does not have
raises MissingColumnError, so callers can move on to the next candidate.

    store.table("gift_cards").eq("session_id", sid).order("created_at").limit(1).maybe_single()
"""
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger
from sqlalchemy import MetaData, Table, func, select
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError
from sqlalchemy.orm import Session

from gifty.errors import MissingColumnError, RecordStoreError


# Fragments drivers use when a statement references an unknown column
# (sqlite, postgres, mysql).
MISSING_COLUMN_MARKERS = ("no such column", "does not exist", "unknown column")


def _is_missing_column(exc: SQLAlchemyError) -> bool:
    message = str(getattr(exc, "orig", None) or exc).lower()
    return "column" in message and any(marker in message for marker in MISSING_COLUMN_MARKERS)


class RecordQuery:
    def __init__(self, store: "RecordStore", table: Table):
        self._store = store
        self._table = table
        self._filters = []
        self._filter_columns: List[str] = []
        self._order_by = None
        self._limit: Optional[int] = None

    def _column(self, name: str):
        if name not in self._table.c:
            raise MissingColumnError(self._table.name, name)
        return self._table.c[name]

    def eq(self, column: str, value: Any, ignore_case: bool = False) -> "RecordQuery":
        col = self._column(column)
        if ignore_case:
            self._filters.append(func.lower(col) == str(value).lower())
        else:
            self._filters.append(col == value)
        self._filter_columns.append(column)
        return self

    def in_(self, column: str, values: Iterable[Any], ignore_case: bool = False) -> "RecordQuery":
        col = self._column(column)
        if ignore_case:
            self._filters.append(func.lower(col).in_([str(v).lower() for v in values]))
        else:
            self._filters.append(col.in_(list(values)))
        self._filter_columns.append(column)
        return self

    def order(self, column: str, desc: bool = True) -> "RecordQuery":
        if column not in self._table.c:
            logger.debug("Ordering column missing, leaving rows unordered",
                         table=self._table.name, column=column)
            return self
        col = self._table.c[column]
        self._order_by = col.desc() if desc else col.asc()
        return self

    def limit(self, n: int) -> "RecordQuery":
        self._limit = n
        return self

    def _statement(self):
        stmt = select(self._table)
        for clause in self._filters:
            stmt = stmt.where(clause)
        if self._order_by is not None:
            stmt = stmt.order_by(self._order_by)
        if self._limit is not None:
            stmt = stmt.limit(self._limit)
        return stmt

    def all(self) -> List[Dict[str, Any]]:
        return self._store.execute(self._table.name, self._statement(), self._filter_columns)

    def maybe_single(self) -> Optional[Dict[str, Any]]:
        """First row as a dict, or None when nothing matches."""
        self._limit = 1 if self._limit is None else min(self._limit, 1)
        rows = self.all()
        return rows[0] if rows else None


class RecordStore:
    """Per-request read access to the hosted database."""

    def __init__(self, db: Session):
        self._db = db
        self._metadata = MetaData()

    def _reflect(self, name: str) -> Table:
        if name in self._metadata.tables:
            return self._metadata.tables[name]
        try:
            return Table(name, self._metadata, autoload_with=self._db.connection())
        except NoSuchTableError as e:
            raise RecordStoreError(f"Table {name!r} not found") from e
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Could not reflect table {name!r}: {e}") from e

    def table(self, name: str) -> RecordQuery:
        return RecordQuery(self, self._reflect(name))

    def execute(self, table: str, stmt, filter_columns: List[str]) -> List[Dict[str, Any]]:
        try:
            result = self._db.execute(stmt)
            return [dict(row) for row in result.mappings().all()]
        except SQLAlchemyError as e:
            # A failed statement poisons the transaction on postgres.
            self._db.rollback()
            if _is_missing_column(e):
                column = filter_columns[-1] if filter_columns else "?"
                raise MissingColumnError(table, column) from e
            raise RecordStoreError(f"Query on {table!r} failed: {e}") from e
