from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Import outcome models: aggregated counts of one import run.

Used for reporting only (SUMMARY line, exit code); nothing else branches on it.
"""

__all__ = [
    "ImportOutcome",
    "ItemsImportMode",
    "ItemsImportOutcome",
]


@dataclass(frozen=True)
class ImportOutcome:
    """Counts for one committed import run.

    imported_children only includes items whose parent was stored and whose
    batch insert succeeded.
    """
    imported_parents: int = 0
    duplicate_parents: int = 0
    skipped_missing_key: int = 0
    imported_children: int = 0
    failed_parents: int = 0
    failed_child_batches: int = 0
    not_attempted: int = 0
    cancelled: bool = False
    elapsed_seconds: float = 0.0

    @property
    def attempted_parents(self) -> int:
        return self.imported_parents + self.failed_parents

    @property
    def new_parents(self) -> int:
        """Parents that were eligible for import (attempted or not)."""
        return self.attempted_parents + self.not_attempted

    @property
    def is_partial_failure(self) -> bool:
        return bool(self.failed_parents or self.failed_child_batches or self.cancelled)


class ItemsImportMode(Enum):
    """How imported line items meet the items already on the estimate."""
    APPEND = "append"
    REPLACE = "replace"


@dataclass(frozen=True)
class ItemsImportOutcome:
    offer_number: str
    mode: ItemsImportMode
    imported_items: int
    removed_items: int
    skipped_rows: int
    elapsed_seconds: float = 0.0
