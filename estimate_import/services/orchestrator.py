from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from ..db.store import EstimateStore, PersistenceError
from ..excel.reader import SheetDecodeError, read_sheet
from ..logging.error_log import ErrorLogBuffer, ErrorRecord, ErrorType
from ..models.config_models import ImportConfig
from ..models.import_outcome import ImportOutcome
from ..models.records import ParentRecord
from ..models.synonyms import SynonymDictionary
from .planner import ImportPlan, plan_import
from .progress import ProgressTracker
from .summary import render_preview

"""Import orchestration.

run_import sequences one import run:
1. Fetch the existing offer numbers (fatal on failure, nothing committed)
2. Read the first worksheet (fatal on failure, nothing committed)
3. Plan: map columns, detect structure, group, partition new/duplicate
4. Log the preview
5. Commit the new estimates one by one (import_all)

import_all is a best-effort batch, not a transaction: every estimate is
attempted independently, a failed estimate skips only its own items, and a
failed item batch leaves its already stored estimate in place.
"""

__all__ = [
    "ImportAbortedError",
    "PrerequisiteFetchError",
    "DecodeFailureError",
    "ImportRun",
    "import_all",
    "run_import",
]

logger = logging.getLogger(__name__)

FILE_LEVEL = "<FILE_LEVEL>"


class ImportAbortedError(Exception):
    """Base for failures that end an import run before anything is committed."""


class PrerequisiteFetchError(ImportAbortedError):
    """Existing offer numbers could not be fetched."""


class DecodeFailureError(ImportAbortedError):
    """The spreadsheet could not be read or holds no data."""


@dataclass(frozen=True)
class ImportTask:
    position: int  # 1-based position in the commit order
    record: ParentRecord


@dataclass
class _Counters:
    imported_parents: int = 0
    imported_children: int = 0
    failed_parents: int = 0
    failed_child_batches: int = 0


@dataclass(frozen=True)
class ImportRun:
    plan: ImportPlan
    outcome: ImportOutcome | None  # None for dry runs


def _first_row(record: ParentRecord) -> int:
    return record.source_rows[0] if record.source_rows else -1


def _import_one(
    task: ImportTask,
    store: EstimateStore,
    counters: _Counters,
    error_log: ErrorLogBuffer | None,
    file_name: str,
    sheet_name: str,
) -> bool:
    record = task.record
    try:
        parent_id = store.insert_parent(record)
    except PersistenceError as e:
        counters.failed_parents += 1
        logger.error("estimate #%d offer=%s not imported: %s", task.position, record.offer_number, e)
        if error_log is not None:
            error_log.append(
                ErrorRecord.create(
                    file=file_name,
                    sheet=sheet_name,
                    row=_first_row(record),
                    error_type=ErrorType.PARENT_INSERT_FAILED,
                    message=str(e),
                )
            )
        return False

    counters.imported_parents += 1
    if not record.items:
        return True

    try:
        store.insert_children(parent_id, record.items)
    except PersistenceError as e:
        counters.failed_child_batches += 1
        logger.error(
            "estimate #%d offer=%s stored (id=%s) but its %d item(s) failed: %s",
            task.position,
            record.offer_number,
            parent_id,
            len(record.items),
            e,
        )
        if error_log is not None:
            error_log.append(
                ErrorRecord.create(
                    file=file_name,
                    sheet=sheet_name,
                    row=_first_row(record),
                    error_type=ErrorType.CHILDREN_INSERT_FAILED,
                    message=str(e),
                )
            )
        return False

    counters.imported_children += len(record.items)
    return True


def import_all(
    parents: Sequence[ParentRecord],
    store: EstimateStore,
    *,
    duplicates: int = 0,
    skipped_missing_key: int = 0,
    should_stop: Callable[[], bool] | None = None,
    timeout_seconds: float | None = None,
    error_log: ErrorLogBuffer | None = None,
    file_name: str = FILE_LEVEL,
    sheet_name: str = FILE_LEVEL,
    show_progress: bool = True,
) -> ImportOutcome:
    """Commit new estimates one at a time, in the given order.

    should_stop / timeout_seconds are checked between estimates, never in the
    middle of one; estimates left on the queue are reported as not_attempted.
    """
    start = time.monotonic()
    queue: deque[ImportTask] = deque(
        ImportTask(position=i, record=p) for i, p in enumerate(parents, start=1)
    )
    counters = _Counters()
    cancelled = False

    with ProgressTracker(len(queue), enabled=show_progress) as progress:
        while queue:
            if should_stop is not None and should_stop():
                logger.warning("import stopped on request; %d estimate(s) left", len(queue))
                cancelled = True
                break
            if timeout_seconds is not None and time.monotonic() - start > timeout_seconds:
                logger.warning(
                    "import timed out after %.1fs; %d estimate(s) left", timeout_seconds, len(queue)
                )
                cancelled = True
                break

            task = queue.popleft()
            progress.start(task.record.offer_number)
            ok = _import_one(task, store, counters, error_log, file_name, sheet_name)
            progress.set_postfix(
                ok=counters.imported_parents,
                failed=counters.failed_parents,
                items=counters.imported_children,
            )
            progress.finish(success=ok)

    return ImportOutcome(
        imported_parents=counters.imported_parents,
        duplicate_parents=duplicates,
        skipped_missing_key=skipped_missing_key,
        imported_children=counters.imported_children,
        failed_parents=counters.failed_parents,
        failed_child_batches=counters.failed_child_batches,
        not_attempted=len(queue),
        cancelled=cancelled,
        elapsed_seconds=time.monotonic() - start,
    )


def run_import(
    path: Path,
    store: EstimateStore,
    synonyms: SynonymDictionary,
    config: ImportConfig,
    *,
    dry_run: bool = False,
    should_stop: Callable[[], bool] | None = None,
    error_log: ErrorLogBuffer | None = None,
    mime_type: str | None = None,
    show_progress: bool = True,
) -> ImportRun:
    """Run one import end to end.

    Raises:
        PrerequisiteFetchError: existing offer numbers could not be fetched
        DecodeFailureError: the file is unsupported, unreadable or empty
    """
    try:
        existing_keys = store.fetch_existing_keys()
    except PersistenceError as e:
        if error_log is not None:
            error_log.append(
                ErrorRecord.create(
                    file=path.name,
                    sheet=FILE_LEVEL,
                    row=-1,
                    error_type=ErrorType.PREREQUISITE_FETCH_FAILURE,
                    message=str(e),
                )
            )
        raise PrerequisiteFetchError(f"could not fetch existing estimates: {e}") from e
    logger.debug("existing offer numbers: %d", len(existing_keys))

    try:
        sheet = read_sheet(path, keep_na_strings=config.keep_na_strings, mime_type=mime_type)
    except SheetDecodeError as e:
        if error_log is not None:
            error_log.append(
                ErrorRecord.create(
                    file=path.name,
                    sheet=FILE_LEVEL,
                    row=-1,
                    error_type=ErrorType.DECODE_FAILURE,
                    message=str(e),
                )
            )
        raise DecodeFailureError(str(e)) from e
    logger.info("read %s sheet=%s rows=%d", path.name, sheet.sheet_name, len(sheet.rows))

    plan = plan_import(
        sheet, existing_keys, synonyms, repeat_ratio_threshold=config.repeat_ratio_threshold
    )
    for line in render_preview(plan.preview(config.preview_limit)):
        logger.info("preview %s", line)

    if dry_run:
        logger.info("dry run: %d new estimate(s) not committed", len(plan.partition.new))
        return ImportRun(plan=plan, outcome=None)

    outcome = import_all(
        plan.partition.new,
        store,
        duplicates=plan.duplicate_count,
        skipped_missing_key=plan.skipped_missing_key,
        should_stop=should_stop,
        timeout_seconds=config.timeout_seconds,
        error_log=error_log,
        file_name=path.name,
        sheet_name=sheet.sheet_name,
        show_progress=show_progress,
    )
    return ImportRun(plan=plan, outcome=outcome)
