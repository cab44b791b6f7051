# Shared pytest fixtures
from __future__ import annotations

import logging
import tempfile
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from estimate_import.config.synonyms import default_synonyms
from estimate_import.excel.reader import SheetData
from estimate_import.logging.init import LOGGER_NAME, reset_logging
from estimate_import.models.row_data import RawRow
from estimate_import.models.synonyms import SynonymDictionary


@pytest.fixture(autouse=True)
def _isolated_logging():
    """Undo setup_logging() between tests so caplog/capsys see fresh handlers."""
    yield
    reset_logging()
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """user_id: user-123
tables:
  parents: project_estimates
  children: estimate_items
repeat_ratio_threshold: 0.8
preview_limit: 3
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture(scope="session")
def synonyms() -> SynonymDictionary:
    return default_synonyms()


@pytest.fixture()
def make_rows() -> Callable[[Sequence[str], Sequence[Sequence[Any]]], list[RawRow]]:
    """Build RawRows as the reader would: first data row is spreadsheet row 2."""
    def _make(headers: Sequence[str], data: Sequence[Sequence[Any]]) -> list[RawRow]:
        return [
            RawRow(row_number=i, cells=dict(zip(headers, values)))
            for i, values in enumerate(data, start=2)
        ]
    return _make


@pytest.fixture()
def make_sheet(make_rows) -> Callable[..., SheetData]:
    def _make(
        headers: Sequence[str], data: Sequence[Sequence[Any]], name: str = "Offerter"
    ) -> SheetData:
        return SheetData(sheet_name=name, headers=list(headers), rows=make_rows(headers, data))
    return _make


@pytest.fixture()
def make_xlsx(temp_workdir: Path) -> Callable[..., Path]:
    """Write a real .xlsx whose first sheet holds ``rows`` (header row first)."""
    def _make(
        name: str,
        rows: list[list[object]],
        sheet_name: str = "Offerter",
        extra_sheets: dict[str, list[list[object]]] | None = None,
    ) -> Path:
        path = temp_workdir / "data" / name
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)
            for extra_name, extra_rows in (extra_sheets or {}).items():
                pd.DataFrame(extra_rows).to_excel(
                    writer, sheet_name=extra_name, header=False, index=False
                )
        return path
    return _make
