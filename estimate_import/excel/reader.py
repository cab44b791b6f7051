from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from ..models.row_data import RawRow, cell_text

"""Spreadsheet reader: first worksheet -> headers + RawRows.

Row 1 is the header row, rows 2+ are data. Only the first worksheet of a
workbook is read; later sheets are ignored. Any failure here is fatal for the
import run, before anything is planned or committed.
"""

SUPPORTED_EXTENSIONS = frozenset({".xls", ".xlsx"})
SUPPORTED_MIME_TYPES = frozenset({
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
})
EMPTY_HEADER_PREFIX = "__EMPTY"


class SheetDecodeError(Exception):
    """Raised when the workbook cannot be opened or parsed."""


class UnsupportedFileError(SheetDecodeError):
    """Raised for files that are neither .xls nor .xlsx."""


class EmptySheetError(SheetDecodeError):
    """Raised when the first worksheet has no header or no data rows."""


@dataclass
class SheetData:
    sheet_name: str
    headers: list[str]
    rows: list[RawRow] = field(default_factory=list)


def check_supported(path: Path, mime_type: str | None = None) -> None:
    """Reject anything that is not a known spreadsheet by extension or MIME type."""
    if path.suffix.lower() in SUPPORTED_EXTENSIONS:
        return
    if mime_type is not None and mime_type in SUPPORTED_MIME_TYPES:
        return
    raise UnsupportedFileError(
        f"unsupported file type: {path.name} (expected one of {sorted(SUPPORTED_EXTENSIONS)})"
    )


def read_first_sheet(
    path: Path, keep_na_strings: list[str] | None = None
) -> tuple[str, pd.DataFrame]:
    """Read the first worksheet raw (no header applied).

    keep_na_strings: strings pandas would normally turn into NaN but which
    must be kept as text (e.g. "NA" as a unit or customer initials).
    """
    import pandas._libs.parsers as parsers

    if keep_na_strings:
        na_values = list(parsers.STR_NA_VALUES - set(keep_na_strings))
        keep_default_na = False
    else:
        na_values = None
        keep_default_na = True

    try:
        xls = pd.ExcelFile(path)
        if not xls.sheet_names:
            raise EmptySheetError(f"{path.name}: workbook has no sheets")
        name = str(xls.sheet_names[0])
        df = xls.parse(
            xls.sheet_names[0], header=None, keep_default_na=keep_default_na, na_values=na_values
        )
    except SheetDecodeError:
        raise
    except Exception as e:
        raise SheetDecodeError(f"{path.name}: cannot read workbook: {e}") from e
    return name, df


def _header_names(values: list[Any]) -> list[str]:
    raw = [cell_text(_cell(v)) for v in values]
    taken = {name for name in raw if name}
    headers: list[str] = []
    suffixes: dict[str, int] = {}
    for index, name in enumerate(raw):
        if not name:
            name = EMPTY_HEADER_PREFIX if index == 0 else f"{EMPTY_HEADER_PREFIX}_{index}"
        if name in headers:
            base = name
            # skip suffixes that another header already spells out
            while name in taken:
                suffixes[base] = suffixes.get(base, 0) + 1
                name = f"{base}_{suffixes[base]}"
        taken.add(name)
        headers.append(name)
    return headers


def _cell(value: Any) -> Any:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def normalize_sheet(df: pd.DataFrame, sheet_name: str) -> SheetData:
    """Apply row 1 as header and turn remaining non-blank rows into RawRows.

    Steps:
    1. Validate a header row exists
    2. Build unique header names (blank -> __EMPTY_<n>, repeats -> _<n>)
    3. Convert each data row; fully blank rows are dropped
    4. Validate at least one data row remains
    """
    if df.shape[0] < 1:
        raise EmptySheetError(f"sheet '{sheet_name}' is empty")
    headers = _header_names(df.iloc[0].tolist())

    rows: list[RawRow] = []
    for index, raw in df.iloc[1:].iterrows():
        if raw.isna().all():
            continue
        cells = {h: _cell(v) for h, v in zip(headers, raw.tolist(), strict=False)}
        row = RawRow(row_number=int(index) + 1, cells=cells)
        if row.is_blank():
            continue
        rows.append(row)

    if not rows:
        raise EmptySheetError(f"sheet '{sheet_name}' has no data rows")
    return SheetData(sheet_name=sheet_name, headers=headers, rows=rows)


def read_sheet(
    path: Path, keep_na_strings: list[str] | None = None, mime_type: str | None = None
) -> SheetData:
    check_supported(path, mime_type)
    if not path.exists():
        raise SheetDecodeError(f"file not found: {path}")
    name, df = read_first_sheet(path, keep_na_strings=keep_na_strings)
    return normalize_sheet(df, name)
