from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from ..models.records import ChildRecord, ParentRecord, normalize_key
from ..models.row_data import RawRow
from ..models.synonyms import (
    NUMERIC_ITEM_FIELDS,
    NUMERIC_PARENT_FIELDS,
    ParentField,
    SynonymDictionary,
)
from .column_mapper import ColumnMapping
from .numbers import classify_category, parse_number, parse_status
from .structure import SheetStructure

"""Row grouping: raw rows -> estimates with ordered line items.

Flat sheets are partitioned by business key in file order; the first row of
each key seeds the estimate fields and every row (the first included) adds a
line item. Later rows never overwrite estimate fields. Grouped sheets turn
each row into one estimate without items.

Rows without a business key are skipped and counted, under either structure.
"""

__all__ = [
    "GroupingResult",
    "resolve_business_key",
    "child_from_row",
    "backfill_items",
    "group_rows",
]

logger = logging.getLogger(__name__)


@dataclass
class GroupingResult:
    parents: list[ParentRecord] = field(default_factory=list)
    skipped_rows: list[int] = field(default_factory=list)  # row numbers lacking a key

    @property
    def skipped_missing_key(self) -> int:
        return len(self.skipped_rows)

    @property
    def item_count(self) -> int:
        return sum(len(p.items) for p in self.parents)


def resolve_business_key(row: RawRow, mapping: ColumnMapping) -> str:
    """Trimmed business key of a row ("" when none).

    With several key columns the last non-empty one wins.
    """
    key = ""
    for header in mapping.parent_headers(ParentField.OFFER_NUMBER):
        text = row.text(header)
        if text:
            key = text
    return key


def _parent_from_row(
    row: RawRow, mapping: ColumnMapping, offer_number: str, synonyms: SynonymDictionary
) -> ParentRecord:
    parent = ParentRecord(offer_number=offer_number)
    for header, target in mapping.parent.items():
        text = row.text(header)
        if not text or target is ParentField.OFFER_NUMBER:
            continue
        if target in NUMERIC_PARENT_FIELDS:
            value = parse_number(row.get(header))
            if value is not None:
                setattr(parent, target.value, value)
        elif target is ParentField.STATUS:
            parent.status = parse_status(text, synonyms)
        else:
            setattr(parent, target.value, text)
    return parent


def child_from_row(row: RawRow, mapping: ColumnMapping) -> ChildRecord:
    child = ChildRecord(source_row=row.row_number)
    for header, target in mapping.item.items():
        text = row.text(header)
        if not text:
            continue
        if target in NUMERIC_ITEM_FIELDS:
            value = parse_number(row.get(header))
            if value is not None:
                setattr(child, target.value, value)
        else:
            setattr(child, target.value, text)
    return child


def backfill_items(items: Sequence[ChildRecord], synonyms: SynonymDictionary, start: int = 0) -> None:
    """Fill line text, subtotal, type and sort order; sort order counts from ``start``."""
    placeholders = synonyms.placeholders
    for index, child in enumerate(items, start=start):
        if not child.moment:
            child.moment = child.description or placeholders.moment
        if child.subtotal is None:
            child.subtotal = child.effective_subtotal
        child.sort_order = index
        child.item_type = classify_category(child.category, synonyms)
        child.type_label = child.category or placeholders.item_type_label


def _backfill(parents: list[ParentRecord], synonyms: SynonymDictionary) -> None:
    placeholders = synonyms.placeholders
    for parent in parents:
        if not parent.project_name:
            parent.project_name = parent.offer_number
        if not parent.client_name:
            parent.client_name = placeholders.client_name
        backfill_items(parent.items, synonyms)


def group_rows(
    rows: Sequence[RawRow],
    mapping: ColumnMapping,
    structure: SheetStructure,
    synonyms: SynonymDictionary,
) -> GroupingResult:
    result = GroupingResult()

    if structure is SheetStructure.GROUPED:
        for row in rows:
            offer_number = resolve_business_key(row, mapping)
            if not offer_number:
                result.skipped_rows.append(row.row_number)
                continue
            parent = _parent_from_row(row, mapping, offer_number, synonyms)
            parent.source_rows.append(row.row_number)
            result.parents.append(parent)
    else:
        by_key: dict[str, ParentRecord] = {}
        for row in rows:
            offer_number = resolve_business_key(row, mapping)
            if not offer_number:
                result.skipped_rows.append(row.row_number)
                continue
            key = normalize_key(offer_number)
            parent = by_key.get(key)
            if parent is None:
                parent = _parent_from_row(row, mapping, offer_number, synonyms)
                by_key[key] = parent
                result.parents.append(parent)
            parent.source_rows.append(row.row_number)
            parent.items.append(child_from_row(row, mapping))

    _backfill(result.parents, synonyms)

    if result.skipped_rows:
        logger.warning(
            "skipped %d row(s) without offer number: rows=%s",
            len(result.skipped_rows),
            result.skipped_rows[:20],
        )
    logger.debug(
        "group_rows structure=%s parents=%d items=%d skipped=%d",
        structure.value,
        len(result.parents),
        result.item_count,
        result.skipped_missing_key,
    )
    return result
