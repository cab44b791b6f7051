from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from ..models.records import ParentRecord, normalize_key

"""Dedup filter: split parsed estimates into new vs already stored.

``existing_keys`` is a snapshot taken once per import run; concurrent writers
are not re-checked before commit.
"""

__all__ = [
    "DedupPartition",
    "PreviewEntry",
    "normalize_existing_keys",
    "partition_by_existing",
    "build_preview",
]


@dataclass
class DedupPartition:
    new: list[ParentRecord] = field(default_factory=list)
    duplicate: list[ParentRecord] = field(default_factory=list)

    @property
    def new_item_count(self) -> int:
        return sum(len(p.items) for p in self.new)


@dataclass(frozen=True)
class PreviewEntry:
    record: ParentRecord
    is_duplicate: bool


def normalize_existing_keys(keys: Iterable[str | None]) -> frozenset[str]:
    """Normalize stored keys the same way parsed keys are compared; blanks dropped."""
    return frozenset(k for k in (normalize_key(str(v)) for v in keys if v is not None) if k)


def partition_by_existing(
    parents: Sequence[ParentRecord], existing_keys: Iterable[str]
) -> DedupPartition:
    existing = normalize_existing_keys(existing_keys)
    partition = DedupPartition()
    for parent in parents:
        if parent.key in existing:
            partition.duplicate.append(parent)
        else:
            partition.new.append(parent)
    return partition


def build_preview(
    parents: Sequence[ParentRecord], existing_keys: Iterable[str], limit: int
) -> list[PreviewEntry]:
    """First ``limit`` parsed estimates in file order, each flagged if already stored."""
    existing = normalize_existing_keys(existing_keys)
    return [PreviewEntry(record=p, is_duplicate=p.key in existing) for p in parents[:limit]]
