from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from ..excel.reader import SheetData
from ..models.config_models import DEFAULT_REPEAT_RATIO_THRESHOLD
from ..models.synonyms import SynonymDictionary
from .column_mapper import ColumnMapping, map_sheet_columns
from .dedup import DedupPartition, PreviewEntry, build_preview, normalize_existing_keys, partition_by_existing
from .grouper import GroupingResult, group_rows
from .structure import StructureReport, detect_structure

"""Import planning: the pure part of an import run.

plan_import chains column mapping, structure detection, grouping and the
dedup partition without touching storage, so the result can be previewed
before anything is committed.
"""

__all__ = [
    "ImportPlan",
    "plan_import",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportPlan:
    sheet: SheetData
    mapping: ColumnMapping
    structure: StructureReport
    grouping: GroupingResult
    partition: DedupPartition
    existing_keys: frozenset[str]

    @property
    def skipped_missing_key(self) -> int:
        return self.grouping.skipped_missing_key

    @property
    def duplicate_count(self) -> int:
        return len(self.partition.duplicate)

    def preview(self, limit: int) -> list[PreviewEntry]:
        return build_preview(self.grouping.parents, self.existing_keys, limit)


def plan_import(
    sheet: SheetData,
    existing_keys: Iterable[str],
    synonyms: SynonymDictionary,
    repeat_ratio_threshold: float = DEFAULT_REPEAT_RATIO_THRESHOLD,
) -> ImportPlan:
    existing = normalize_existing_keys(existing_keys)
    mapping = map_sheet_columns(sheet.headers, synonyms)
    logger.debug("column mapping %s", mapping.describe())
    if mapping.key_header is None:
        logger.warning(
            "no column maps to the offer number; every row will be skipped (headers=%s)",
            sheet.headers,
        )

    report = detect_structure(sheet.rows, mapping, threshold=repeat_ratio_threshold)
    grouping = group_rows(sheet.rows, mapping, report.structure, synonyms)
    partition = partition_by_existing(grouping.parents, existing)

    logger.info(
        "planned sheet=%s %s parents=%d new=%d duplicates=%d skipped_rows=%d",
        sheet.sheet_name,
        report.describe(),
        len(grouping.parents),
        len(partition.new),
        len(partition.duplicate),
        grouping.skipped_missing_key,
    )
    return ImportPlan(
        sheet=sheet,
        mapping=mapping,
        structure=report,
        grouping=grouping,
        partition=partition,
        existing_keys=existing,
    )
