from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..db.store import EstimateStore, PersistenceError
from ..excel.reader import SheetData, SheetDecodeError, read_sheet
from ..logging.error_log import ErrorLogBuffer, ErrorRecord, ErrorType
from ..models.config_models import ImportConfig
from ..models.import_outcome import ItemsImportMode, ItemsImportOutcome
from ..models.records import ChildRecord
from ..models.synonyms import SynonymDictionary
from .column_mapper import ColumnMapping, map_sheet_columns
from .grouper import backfill_items, child_from_row
from .orchestrator import FILE_LEVEL, DecodeFailureError, ImportAbortedError, PrerequisiteFetchError
from .summary import render_item_preview

"""Line-item import into one stored estimate.

Every non-empty row of the first worksheet becomes a line item of the
estimate named on the command line; there is no offer number column, no
structure detection and no dedup. The items are written as one batch:

- append:  added after the estimate's current items (sort order continues)
- replace: the current items are deleted and the new ones inserted in the
           same transaction

Unlike the estimate import this is all-or-nothing: a failed batch aborts the
run and nothing is committed.
"""

__all__ = [
    "ItemsImportMode",
    "EstimateNotFoundError",
    "ItemsWriteError",
    "ItemsPlan",
    "ItemsImportOutcome",
    "ItemsImportRun",
    "line_subtotal",
    "plan_items_import",
    "run_items_import",
]

logger = logging.getLogger(__name__)


class EstimateNotFoundError(ImportAbortedError):
    """No stored estimate carries the requested offer number."""


class ItemsWriteError(ImportAbortedError):
    """The item batch could not be written; nothing was committed."""


@dataclass(frozen=True)
class ItemsPlan:
    sheet: SheetData
    mapping: ColumnMapping
    items: list[ChildRecord] = field(default_factory=list)
    skipped_rows: list[int] = field(default_factory=list)  # rows with nothing to import


@dataclass(frozen=True)
class ItemsImportRun:
    plan: ItemsPlan
    outcome: ItemsImportOutcome | None  # None for dry runs


def line_subtotal(child: ChildRecord) -> float | None:
    """Subtotal as given, else hours x unit price, else quantity x unit price.

    A zero subtotal counts as missing, as item exports leave 0 in unfilled
    sum cells.
    """
    if child.subtotal:
        return child.subtotal
    if child.unit_price:
        if child.hours is not None:
            return child.hours * child.unit_price
        if child.quantity is not None:
            return child.quantity * child.unit_price
    return child.subtotal


def _has_content(child: ChildRecord) -> bool:
    return bool(child.moment or child.description or child.subtotal or child.unit_price)


def plan_items_import(sheet: SheetData, synonyms: SynonymDictionary) -> ItemsPlan:
    mapping = map_sheet_columns(sheet.headers, synonyms)
    logger.debug("column mapping %s", mapping.describe())
    if not mapping.item:
        logger.warning("no column maps to a line item field (headers=%s)", sheet.headers)

    items: list[ChildRecord] = []
    skipped: list[int] = []
    for row in sheet.rows:
        child = child_from_row(row, mapping)
        child.subtotal = line_subtotal(child)
        if not _has_content(child):
            skipped.append(row.row_number)
            continue
        items.append(child)
    backfill_items(items, synonyms)

    if skipped:
        logger.warning("skipped %d row(s) without item text or amount: rows=%s", len(skipped), skipped[:20])
    logger.info("planned sheet=%s items=%d skipped_rows=%d", sheet.sheet_name, len(items), len(skipped))
    return ItemsPlan(sheet=sheet, mapping=mapping, items=items, skipped_rows=skipped)


def _log_error(
    error_log: ErrorLogBuffer | None, path: Path, sheet: str, error_type: str, message: str
) -> None:
    if error_log is not None:
        error_log.append(
            ErrorRecord.create(file=path.name, sheet=sheet, row=-1, error_type=error_type, message=message)
        )


def _write_items(
    store: EstimateStore, parent_id: Any, items: list[ChildRecord], mode: ItemsImportMode
) -> int:
    if mode is ItemsImportMode.REPLACE:
        return store.replace_children(parent_id, items)
    offset = store.count_children(parent_id)
    for index, child in enumerate(items, start=offset):
        child.sort_order = index
    store.insert_children(parent_id, items)
    return 0


def run_items_import(
    path: Path,
    store: EstimateStore,
    synonyms: SynonymDictionary,
    config: ImportConfig,
    *,
    offer_number: str,
    mode: ItemsImportMode = ItemsImportMode.APPEND,
    dry_run: bool = False,
    error_log: ErrorLogBuffer | None = None,
    mime_type: str | None = None,
) -> ItemsImportRun:
    """Import the rows of ``path`` as line items of estimate ``offer_number``.

    Raises:
        PrerequisiteFetchError: the estimate lookup failed
        EstimateNotFoundError: no estimate has that offer number
        DecodeFailureError: the file is unsupported, unreadable, empty or has
            no importable rows
        ItemsWriteError: the item batch was rejected (nothing committed)
    """
    start = time.monotonic()
    try:
        parent_id = store.find_parent_id(offer_number)
    except PersistenceError as e:
        _log_error(error_log, path, FILE_LEVEL, ErrorType.PREREQUISITE_FETCH_FAILURE, str(e))
        raise PrerequisiteFetchError(f"could not look up estimate {offer_number}: {e}") from e
    if parent_id is None:
        message = f"no estimate with offer number {offer_number!r}"
        _log_error(error_log, path, FILE_LEVEL, ErrorType.ESTIMATE_NOT_FOUND, message)
        raise EstimateNotFoundError(message)

    try:
        sheet = read_sheet(path, keep_na_strings=config.keep_na_strings, mime_type=mime_type)
    except SheetDecodeError as e:
        _log_error(error_log, path, FILE_LEVEL, ErrorType.DECODE_FAILURE, str(e))
        raise DecodeFailureError(str(e)) from e
    logger.info("read %s sheet=%s rows=%d", path.name, sheet.sheet_name, len(sheet.rows))

    plan = plan_items_import(sheet, synonyms)
    if not plan.items:
        # an empty replace would only delete
        message = f"{path.name}: no importable item rows (check the column names)"
        _log_error(error_log, path, sheet.sheet_name, ErrorType.DECODE_FAILURE, message)
        raise DecodeFailureError(message)
    for line in render_item_preview(plan.items[: config.preview_limit]):
        logger.info("preview %s", line)

    if dry_run:
        logger.info(
            "dry run: %d item(s) not written to estimate %s (%s)", len(plan.items), offer_number, mode.value
        )
        return ItemsImportRun(plan=plan, outcome=None)

    try:
        removed = _write_items(store, parent_id, plan.items, mode)
    except PersistenceError as e:
        _log_error(error_log, path, sheet.sheet_name, ErrorType.CHILDREN_INSERT_FAILED, str(e))
        raise ItemsWriteError(f"items for estimate {offer_number} not written: {e}") from e

    outcome = ItemsImportOutcome(
        offer_number=offer_number,
        mode=mode,
        imported_items=len(plan.items),
        removed_items=removed,
        skipped_rows=len(plan.skipped_rows),
        elapsed_seconds=time.monotonic() - start,
    )
    return ItemsImportRun(plan=plan, outcome=outcome)
