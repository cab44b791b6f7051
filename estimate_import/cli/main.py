from __future__ import annotations

import argparse
import os
import signal
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..config.synonyms import SynonymDictionaryError, default_synonyms, load_synonyms
from ..db.store import EstimateStore, MemoryEstimateStore, PostgresEstimateStore
from ..excel.reader import SheetDecodeError, read_sheet
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, set_debug, setup_logging
from ..models.config_models import ImportConfig
from ..models.import_outcome import ItemsImportMode
from ..models.synonyms import SynonymDictionary
from ..services.column_mapper import map_sheet_columns
from ..services.items_import import run_items_import
from ..services.orchestrator import ImportAbortedError, run_import
from ..services.structure import detect_structure
from ..services.summary import render_items_summary_line, render_summary_line

"""CLI entrypoint.

    python -m estimate_import.cli export.xlsx [--config config/import.yml]
        [--dry-run] [--inspect-data] [--timeout SECONDS] [--mime-type TYPE] [--debug]

    python -m estimate_import.cli items.xlsx --items-into OFFER_NUMBER [--mode append|replace]

Exit codes: 0 success, 2 partial failure (failed estimates/items or
interrupted), 1 fatal (config, unreadable file, existing keys not fetchable,
unknown estimate or rejected batch for --items-into).

Set DISABLE_DB_CONNECT=1 to run against an in-memory store (mock mode).
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2


def _resolve_dsn(cfg: ImportConfig) -> str:
    """Connection string; environment (.env loaded first) wins over the config file.

    1. DATABASE_URL / PGDSN, else config database.dsn
    2. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE, falling back to
       the config database section per value
    """
    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


def _db_connect(cfg: ImportConfig) -> Any:  # pragma: no cover (needs a database)
    conn = psycopg2.connect(_resolve_dsn(cfg))
    conn.autocommit = False  # stores commit per record
    return conn


@contextmanager
def _interrupt_flag() -> Iterator[threading.Event]:
    """Turn the first Ctrl-C into a stop request honoured between estimates."""
    stop = threading.Event()
    if threading.current_thread() is not threading.main_thread():
        yield stop
        return

    previous = signal.getsignal(signal.SIGINT)

    def _handler(signum: int, frame: Any) -> None:
        if stop.is_set():
            signal.default_int_handler(signum, frame)
        stop.set()

    signal.signal(signal.SIGINT, _handler)
    try:
        yield stop
    finally:
        signal.signal(signal.SIGINT, previous)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Import estimates from a spreadsheet export")
    p.add_argument("file", type=Path, help="Spreadsheet export (.xls or .xlsx)")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config YAML path")
    p.add_argument("--dry-run", action="store_true", help="Plan and preview without writing")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument(
        "--inspect-data", action="store_true", help="Print headers, mapping and first rows then exit"
    )
    p.add_argument("--timeout", type=float, default=None, help="Stop committing after N seconds")
    p.add_argument(
        "--mime-type", default=None, help="MIME type of the upload when the file name has no .xls/.xlsx suffix"
    )
    p.add_argument(
        "--items-into",
        metavar="OFFER_NUMBER",
        default=None,
        help="Import the rows as line items of this stored estimate",
    )
    p.add_argument(
        "--mode",
        choices=[m.value for m in ItemsImportMode],
        default=None,
        help="With --items-into: append to (default) or replace the estimate's items",
    )
    args = p.parse_args(argv)
    if args.mode is not None and args.items_into is None:
        p.error("--mode requires --items-into")
    return args


def _load_synonyms(cfg: ImportConfig) -> SynonymDictionary:
    if cfg.synonyms_path is not None:
        return load_synonyms(cfg.synonyms_path)
    return default_synonyms()


def _inspect_data(
    path: Path, cfg: ImportConfig, synonyms: SynonymDictionary, mime_type: str | None = None
) -> int:
    try:
        sheet = read_sheet(path, keep_na_strings=cfg.keep_na_strings, mime_type=mime_type)
    except SheetDecodeError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    mapping = map_sheet_columns(sheet.headers, synonyms)
    report = detect_structure(sheet.rows, mapping, threshold=cfg.repeat_ratio_threshold)
    print(f"FILE: {path.name} SHEET: {sheet.sheet_name} rows={len(sheet.rows)}")
    print(f"  headers={sheet.headers}")
    print(f"  {synonyms.describe()}")
    print(f"  mapping {mapping.describe()}")
    print(f"  {report.describe()}")
    for row in sheet.rows[:3]:
        safe = {k: (v.isoformat() if hasattr(v, "isoformat") else v) for k, v in row.cells.items()}
        print(f"  row {row.row_number}: {safe}")
    return EXIT_SUCCESS_ALL


def _execute(
    args: argparse.Namespace,
    cfg: ImportConfig,
    synonyms: SynonymDictionary,
    store: EstimateStore,
    error_log: ErrorLogBuffer,
    logger: Any,
) -> int:
    with _interrupt_flag() as stop:
        try:
            run = run_import(
                args.file,
                store,
                synonyms,
                cfg,
                dry_run=args.dry_run,
                should_stop=stop.is_set,
                error_log=error_log,
                mime_type=args.mime_type,
            )
        except ImportAbortedError as e:
            logger.error(f"import aborted: {e}")
            return EXIT_FATAL

    if run.outcome is None:
        plan = run.plan
        log_summary(
            f"dry_run new={len(plan.partition.new)} items={plan.partition.new_item_count} "
            f"duplicates={plan.duplicate_count} skipped_rows={plan.skipped_missing_key}"
        )
        return EXIT_SUCCESS_ALL

    outcome = run.outcome
    # log_summary adds the "SUMMARY " label itself
    log_summary(render_summary_line(outcome)[len("SUMMARY "):])
    if outcome.is_partial_failure:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def _execute_items(
    args: argparse.Namespace,
    cfg: ImportConfig,
    synonyms: SynonymDictionary,
    store: EstimateStore,
    error_log: ErrorLogBuffer,
    logger: Any,
) -> int:
    mode = ItemsImportMode(args.mode or ItemsImportMode.APPEND.value)
    try:
        run = run_items_import(
            args.file,
            store,
            synonyms,
            cfg,
            offer_number=args.items_into,
            mode=mode,
            dry_run=args.dry_run,
            error_log=error_log,
            mime_type=args.mime_type,
        )
    except ImportAbortedError as e:
        logger.error(f"import aborted: {e}")
        return EXIT_FATAL

    if run.outcome is None:
        log_summary(
            f"dry_run items={len(run.plan.items)} mode={mode.value} estimate={args.items_into} "
            f"skipped_rows={len(run.plan.skipped_rows)}"
        )
        return EXIT_SUCCESS_ALL

    log_summary(render_items_summary_line(run.outcome)[len("SUMMARY "):])
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # An explicit [] must not fall back to sys.argv (pytest arguments)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    load_dotenv(dotenv_path=Path(".env"), override=True)

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL
    if args.timeout is not None:
        cfg = replace(cfg, timeout_seconds=args.timeout)

    try:
        synonyms = _load_synonyms(cfg)
    except SynonymDictionaryError as e:
        logger.error(f"synonyms: {e}")
        return EXIT_FATAL
    logger.debug(synonyms.describe())

    if args.inspect_data:
        return _inspect_data(args.file, cfg, synonyms, args.mime_type)

    execute = _execute_items if args.items_into is not None else _execute
    error_log = ErrorLogBuffer()
    try:
        if os.getenv("DISABLE_DB_CONNECT") == "1":
            logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> mock mode")
            logger.info(f"mode=mock importing {args.file}")
            return execute(args, cfg, synonyms, MemoryEstimateStore(), error_log, logger)

        try:
            conn = _db_connect(cfg)
        except Exception as e:
            # existing offer numbers cannot be fetched without a connection
            logger.error(f"database connection failed: {e}")
            return EXIT_FATAL
        try:
            logger.info(f"mode=live importing {args.file}")
            store = PostgresEstimateStore(conn, cfg.user_id, cfg.tables)
            return execute(args, cfg, synonyms, store, error_log, logger)
        finally:
            conn.close()
    finally:
        log_path = error_log.flush()
        if log_path is not None:
            logger.info(f"error log written: {log_path}")
