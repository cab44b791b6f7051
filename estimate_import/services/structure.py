from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from ..models.config_models import DEFAULT_REPEAT_RATIO_THRESHOLD
from ..models.row_data import RawRow
from ..models.synonyms import STRUCTURE_ITEM_FIELDS
from .column_mapper import ColumnMapping

"""Sheet structure detection (flat vs grouped).

flat    - one row per line item, estimate columns repeated per row
grouped - one row per estimate, no line-item detail

The decision leans towards flat: losing line items is worse than turning
unrelated rows into thin single-item estimates.
"""

__all__ = [
    "SheetStructure",
    "StructureReport",
    "detect_structure",
]

logger = logging.getLogger(__name__)


class SheetStructure(Enum):
    FLAT = "flat"
    GROUPED = "grouped"


class StructureReason:
    REPEATING_KEYS = "repeating-keys"
    ITEM_COLUMNS = "item-columns"
    NO_ITEM_COLUMNS = "no-item-columns"


@dataclass(frozen=True)
class StructureReport:
    """Detection result plus the evidence it was based on."""
    structure: SheetStructure
    reason: str
    key_header: str | None
    has_item_columns: bool
    key_values: int = 0  # non-empty business key cells
    distinct_keys: int = 0
    repeat_ratio: float | None = None  # distinct / non-empty, None when not computed

    def describe(self) -> str:
        ratio = "-" if self.repeat_ratio is None else f"{self.repeat_ratio:.2f}"
        return (
            f"structure={self.structure.value} reason={self.reason} key_header={self.key_header!r} "
            f"item_columns={self.has_item_columns} keys={self.key_values} "
            f"distinct={self.distinct_keys} ratio={ratio}"
        )


def detect_structure(
    rows: Sequence[RawRow],
    mapping: ColumnMapping,
    threshold: float = DEFAULT_REPEAT_RATIO_THRESHOLD,
) -> StructureReport:
    """Classify a sheet as flat or grouped.

    Keys are counted on their trimmed cell text, exactly as exported.
    A sheet is flat by repetition when distinct < threshold * non-empty.
    """
    has_item_columns = any(f in STRUCTURE_ITEM_FIELDS for f in mapping.item.values())
    key_header = mapping.key_header

    if key_header is not None and has_item_columns:
        values = [text for text in (r.text(key_header) for r in rows) if text]
        distinct = len(set(values))
        ratio = distinct / len(values) if values else None
        if values and distinct < len(values) * threshold:
            report = StructureReport(
                structure=SheetStructure.FLAT,
                reason=StructureReason.REPEATING_KEYS,
                key_header=key_header,
                has_item_columns=True,
                key_values=len(values),
                distinct_keys=distinct,
                repeat_ratio=ratio,
            )
        else:
            report = StructureReport(
                structure=SheetStructure.FLAT,
                reason=StructureReason.ITEM_COLUMNS,
                key_header=key_header,
                has_item_columns=True,
                key_values=len(values),
                distinct_keys=distinct,
                repeat_ratio=ratio,
            )
    elif has_item_columns:
        report = StructureReport(
            structure=SheetStructure.FLAT,
            reason=StructureReason.ITEM_COLUMNS,
            key_header=key_header,
            has_item_columns=True,
        )
    else:
        report = StructureReport(
            structure=SheetStructure.GROUPED,
            reason=StructureReason.NO_ITEM_COLUMNS,
            key_header=key_header,
            has_item_columns=False,
        )

    logger.debug("detect_structure %s", report.describe())
    return report
