from __future__ import annotations

import itertools
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from ..models.config_models import TableConfig
from ..models.records import ChildRecord, ParentRecord, normalize_key
from .batch_insert import BatchMetrics, batch_insert

"""Persistence collaborators for the import orchestrator.

EstimateStore is the narrow interface the import core talks to. Stores
translate every driver error into PersistenceError; the orchestrator never
sees driver exceptions.

PostgresEstimateStore commits each insert on its own so that a failed
estimate rolls back only itself (best-effort import, not one transaction).
Replacing the items of one estimate deletes and inserts in the same
transaction, so a failed replace leaves the old items in place.
"""

__all__ = [
    "PersistenceError",
    "EstimateStore",
    "PostgresEstimateStore",
    "MemoryEstimateStore",
]

logger = logging.getLogger(__name__)

PARENT_COLUMNS = (
    "user_id",
    "offer_number",
    "manual_project_name",
    "manual_client_name",
    "manual_address",
    "manual_postal_code",
    "manual_city",
    "total_excl_vat",
    "total_incl_vat",
    "status",
)

CHILD_COLUMNS = (
    "estimate_id",
    "article",
    "moment",
    "description",
    "quantity",
    "unit",
    "unit_price",
    "subtotal",
    "hours",
    "sort_order",
    "type",
)


class PersistenceError(Exception):
    """Raised by a store when a read or write fails."""


class EstimateStore(Protocol):
    def fetch_existing_keys(self) -> set[str]:
        """Normalized offer numbers already stored for the current account."""
        ...

    def insert_parent(self, record: ParentRecord) -> Any:
        """Store one estimate and return its new id."""
        ...

    def insert_children(self, parent_id: Any, children: Sequence[ChildRecord]) -> None:
        """Store all line items of one estimate as a single batch."""
        ...

    def find_parent_id(self, offer_number: str) -> Any | None:
        """Id of the stored estimate with this offer number, None if absent."""
        ...

    def count_children(self, parent_id: Any) -> int:
        ...

    def replace_children(self, parent_id: Any, children: Sequence[ChildRecord]) -> int:
        """Swap all line items of one estimate in one transaction; returns the removed count."""
        ...


def parent_row(user_id: str, record: ParentRecord) -> tuple[Any, ...]:
    return (
        user_id,
        record.offer_number,
        record.project_name,
        record.client_name,
        record.address,
        record.postal_code,
        record.city,
        record.total_excl_vat,
        record.total_incl_vat,
        record.status.value,
    )


def child_row(parent_id: Any, child: ChildRecord) -> tuple[Any, ...]:
    return (
        parent_id,
        child.category,
        child.moment,
        child.description,
        child.quantity,
        child.unit,
        child.unit_price,
        child.effective_subtotal,
        child.hours,
        child.sort_order,
        child.type_label,
    )


class PostgresEstimateStore:
    """psycopg2-backed store writing to the estimates and estimate items tables."""

    def __init__(self, connection: Any, user_id: str, tables: TableConfig | None = None) -> None:
        self.connection = connection
        self.user_id = user_id
        self.tables = tables or TableConfig()

    def fetch_existing_keys(self) -> set[str]:
        sql = f'SELECT offer_number FROM "{self.tables.parents}" WHERE user_id = %s'
        try:
            with self.connection.cursor() as cur:
                cur.execute(sql, (self.user_id,))
                rows = cur.fetchall()
            self.connection.commit()
        except Exception as e:
            self._rollback()
            raise PersistenceError(f"fetch existing offer numbers failed: {e}") from e
        return {normalize_key(str(r[0])) for r in rows if r[0] is not None and str(r[0]).strip()}

    def insert_parent(self, record: ParentRecord) -> Any:
        cols_sql = ",".join(f'"{c}"' for c in PARENT_COLUMNS)
        placeholders = ",".join(["%s"] * len(PARENT_COLUMNS))
        sql = (
            f'INSERT INTO "{self.tables.parents}" ({cols_sql}) '
            f'VALUES ({placeholders}) RETURNING "id"'
        )
        try:
            with self.connection.cursor() as cur:
                cur.execute(sql, parent_row(self.user_id, record))
                new_id = cur.fetchone()[0]
            self.connection.commit()
        except Exception as e:
            self._rollback()
            raise PersistenceError(f"insert estimate {record.offer_number!r} failed: {e}") from e
        return new_id

    def insert_children(self, parent_id: Any, children: Sequence[ChildRecord]) -> None:
        if not children:
            return
        try:
            with self.connection.cursor() as cur:
                self._insert_items(cur, parent_id, children)
            self.connection.commit()
        except Exception as e:
            self._rollback()
            raise PersistenceError(f"insert items for estimate id={parent_id} failed: {e}") from e

    def find_parent_id(self, offer_number: str) -> Any | None:
        sql = (
            f'SELECT "id" FROM "{self.tables.parents}" '
            "WHERE user_id = %s AND lower(trim(offer_number)) = %s ORDER BY \"id\" LIMIT 1"
        )
        try:
            with self.connection.cursor() as cur:
                cur.execute(sql, (self.user_id, normalize_key(offer_number)))
                row = cur.fetchone()
            self.connection.commit()
        except Exception as e:
            self._rollback()
            raise PersistenceError(f"look up estimate {offer_number!r} failed: {e}") from e
        return row[0] if row else None

    def count_children(self, parent_id: Any) -> int:
        sql = f'SELECT count(*) FROM "{self.tables.children}" WHERE estimate_id = %s'
        try:
            with self.connection.cursor() as cur:
                cur.execute(sql, (parent_id,))
                (count,) = cur.fetchone()
            self.connection.commit()
        except Exception as e:
            self._rollback()
            raise PersistenceError(f"count items for estimate id={parent_id} failed: {e}") from e
        return int(count)

    def replace_children(self, parent_id: Any, children: Sequence[ChildRecord]) -> int:
        sql = f'DELETE FROM "{self.tables.children}" WHERE estimate_id = %s'
        try:
            with self.connection.cursor() as cur:
                cur.execute(sql, (parent_id,))
                removed = cur.rowcount
                self._insert_items(cur, parent_id, children)
            self.connection.commit()
        except Exception as e:
            self._rollback()
            raise PersistenceError(f"replace items for estimate id={parent_id} failed: {e}") from e
        return removed

    def _insert_items(self, cur: Any, parent_id: Any, children: Sequence[ChildRecord]) -> None:
        def _log_metrics(metrics: BatchMetrics) -> None:
            logger.debug(
                "item batch estimate_id=%s size=%d elapsed=%.4fs",
                parent_id,
                metrics.batch_size,
                metrics.elapsed_seconds,
            )

        batch_insert(
            cur,
            table=self.tables.children,
            columns=CHILD_COLUMNS,
            rows=[child_row(parent_id, c) for c in children],
            metrics_callback=_log_metrics,
        )

    def _rollback(self) -> None:
        try:
            self.connection.rollback()
        except Exception as e:  # connection already broken
            logger.debug("rollback failed: %s", e)


@dataclass
class MemoryEstimateStore:
    """In-process store used in mock mode (no database) and in tests."""
    existing_keys: set[str] = field(default_factory=set)
    parents: dict[int, ParentRecord] = field(default_factory=dict)
    children: dict[int, list[ChildRecord]] = field(default_factory=dict)
    _ids: Any = field(default_factory=lambda: itertools.count(1), repr=False)

    def fetch_existing_keys(self) -> set[str]:
        stored = {p.key for p in self.parents.values()}
        return {normalize_key(k) for k in self.existing_keys} | stored

    def insert_parent(self, record: ParentRecord) -> int:
        new_id = next(self._ids)
        self.parents[new_id] = record
        return new_id

    def insert_children(self, parent_id: Any, children: Sequence[ChildRecord]) -> None:
        if parent_id not in self.parents:
            raise PersistenceError(f"unknown estimate id={parent_id}")
        self.children.setdefault(parent_id, []).extend(children)

    def find_parent_id(self, offer_number: str) -> int | None:
        key = normalize_key(offer_number)
        for parent_id, record in self.parents.items():
            if record.key == key:
                return parent_id
        return None

    def count_children(self, parent_id: Any) -> int:
        return len(self.children.get(parent_id, []))

    def replace_children(self, parent_id: Any, children: Sequence[ChildRecord]) -> int:
        if parent_id not in self.parents:
            raise PersistenceError(f"unknown estimate id={parent_id}")
        removed = len(self.children.get(parent_id, []))
        self.children[parent_id] = list(children)
        return removed
