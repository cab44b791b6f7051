from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from estimate_import.excel.reader import (
    EmptySheetError,
    SheetDecodeError,
    UnsupportedFileError,
    check_supported,
    normalize_sheet,
    read_sheet,
)


def test_read_first_sheet_only(make_xlsx) -> None:
    path = make_xlsx(
        "export.xlsx",
        [["Offertnr", "Kund"], ["K1", "Anna"], ["K2", "Bertil"]],
        extra_sheets={"Andra": [["Offertnr"], ["X9"]]},
    )
    sheet = read_sheet(path)
    assert sheet.sheet_name == "Offerter"
    assert sheet.headers == ["Offertnr", "Kund"]
    assert [r.row_number for r in sheet.rows] == [2, 3]
    assert sheet.rows[0].text("Kund") == "Anna"


def test_blank_rows_dropped_and_row_numbers_kept(make_xlsx) -> None:
    path = make_xlsx(
        "gaps.xlsx",
        [["Offertnr", "Antal"], ["K1", 2], [None, None], ["K2", 3.5]],
    )
    sheet = read_sheet(path)
    assert [r.row_number for r in sheet.rows] == [2, 4]
    assert sheet.rows[0].get("Antal") == 2
    assert sheet.rows[1].get("Antal") == 3.5


def test_numeric_cells_become_python_scalars(make_xlsx) -> None:
    path = make_xlsx("nums.xlsx", [["Offertnr", "Antal"], [1001, 2], [1002, None]])
    sheet = read_sheet(path)
    first = sheet.rows[0]
    assert first.get("Offertnr") == 1001
    assert isinstance(first.get("Offertnr"), int)
    assert first.text("Offertnr") == "1001"
    assert sheet.rows[1].get("Antal") is None


def test_blank_and_repeated_headers_get_unique_names() -> None:
    df = pd.DataFrame([["Offertnr", None, "Kund", "Kund", None], ["K1", "x", "A", "B", "y"]])
    sheet = normalize_sheet(df, "Blad1")
    assert sheet.headers == ["Offertnr", "__EMPTY_1", "Kund", "Kund_1", "__EMPTY_4"]
    assert sheet.rows[0].text("Kund_1") == "B"


def test_repeated_header_skips_suffix_already_in_sheet() -> None:
    df = pd.DataFrame([["Pris", "Pris", "Pris_1"], [10, 20, 30]])
    sheet = normalize_sheet(df, "Blad1")
    assert sheet.headers == ["Pris", "Pris_2", "Pris_1"]
    row = sheet.rows[0]
    assert [row.get(h) for h in sheet.headers] == [10, 20, 30]


def test_read_with_mime_type_and_unknown_extension(make_xlsx) -> None:
    path = make_xlsx("upload.xlsx", [["Offertnr"], ["K1"]])
    renamed = path.rename(path.with_suffix(".bin"))
    with pytest.raises(UnsupportedFileError):
        read_sheet(renamed)
    sheet = read_sheet(
        renamed, mime_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert sheet.rows[0].text("Offertnr") == "K1"


def test_header_only_sheet_is_empty(make_xlsx) -> None:
    path = make_xlsx("header_only.xlsx", [["Offertnr", "Kund"]])
    with pytest.raises(EmptySheetError):
        read_sheet(path)


def test_empty_dataframe_is_empty_sheet() -> None:
    with pytest.raises(EmptySheetError):
        normalize_sheet(pd.DataFrame(), "Blad1")


def test_unsupported_extension(temp_workdir: Path) -> None:
    path = temp_workdir / "data" / "export.csv"
    path.write_text("Offertnr\nK1\n", encoding="utf-8")
    with pytest.raises(UnsupportedFileError):
        read_sheet(path)


def test_mime_type_accepts_unknown_extension() -> None:
    check_supported(Path("upload.bin"), "application/vnd.ms-excel")
    with pytest.raises(UnsupportedFileError):
        check_supported(Path("upload.bin"), "text/csv")


def test_corrupt_workbook_raises_decode_error(temp_workdir: Path) -> None:
    path = temp_workdir / "data" / "broken.xlsx"
    path.write_bytes(b"not a zip file")
    with pytest.raises(SheetDecodeError) as exc:
        read_sheet(path)
    assert "broken.xlsx" in str(exc.value)


def test_missing_file(temp_workdir: Path) -> None:
    with pytest.raises(SheetDecodeError, match="file not found"):
        read_sheet(temp_workdir / "data" / "missing.xlsx")


def test_keep_na_strings(make_xlsx) -> None:
    path = make_xlsx("na.xlsx", [["Offertnr", "Enhet"], ["K1", "NA"], ["K2", "N/A"]])
    default = read_sheet(path)
    assert default.rows[0].get("Enhet") is None
    kept = read_sheet(path, keep_na_strings=["NA"])
    assert kept.rows[0].get("Enhet") == "NA"
    assert kept.rows[1].get("Enhet") is None
