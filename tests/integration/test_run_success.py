from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from estimate_import.cli.main import main as cli_main
from estimate_import.db.store import MemoryEstimateStore
from estimate_import.models.records import EstimateStatus, ItemType

"""End-to-end CLI runs over real .xlsx exports in mock mode (in-memory store)."""

FLAT_EXPORT = [
    ["Offertnr", "Projektnamn", "Kund", "Adress", "Postnr", "Ort", "Status", "Summa ex moms",
     "Artikel", "Moment", "Antal", "Enhet", "A-pris", "Summa"],
    ["2024-101", "Badrumsrenovering", "Anna Svensson", "Storgatan 1", "111 22", "Stockholm",
     "Klar", "27 900 kr", "Arbete", "Rivning", 8, "tim", "550", "4 400"],
    ["2024-101", None, None, None, None, None, None, None,
     "Material", "Kakel", 12, "kvm", "450 kr", None],
    [None, None, None, None, None, None, None, None, None, None, None, None, None, None],
    ["2024-101", None, None, None, None, None, None, None,
     "UE", "Elinstallation", 1, "st", "18 100", None],
    ["2024-102", "Köksbyte", "Bertil AB", None, None, "Uppsala",
     "Utkast", "54 000", "Material", "Skåp", 14, "st", "3 000", None],
    [None, "Lösrad", None, None, None, None, None, None, None, "Städning", 2, "tim", "400", None],
    ["2024-099", "Gammal", "Cecilia", None, None, None, "Skickad", "1 000", None, "Målning", 1, "st", "1 000", None],
]


@pytest.fixture
def store() -> MemoryEstimateStore:
    return MemoryEstimateStore(existing_keys={"2024-099"})


def _run(args: list[str], store: MemoryEstimateStore) -> int:
    with patch("estimate_import.cli.main.MemoryEstimateStore", return_value=store):
        return cli_main(args)


def test_flat_export_import(write_config, make_xlsx, monkeypatch, store, capsys):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
    path = make_xlsx("offerter.xlsx", FLAT_EXPORT)

    code = _run([str(path)], store)
    out = capsys.readouterr().out

    assert code == 0
    assert "SUMMARY parents=2/2 items=4 duplicates=1 skipped_rows=1 failed=0 not_attempted=0" in out
    assert "WARN skipped 1 row(s) without offer number: rows=[7]" in out

    bathroom, kitchen = store.parents.values()
    assert bathroom.offer_number == "2024-101"
    assert bathroom.project_name == "Badrumsrenovering"
    assert bathroom.client_name == "Anna Svensson"
    assert bathroom.postal_code == "111 22"
    assert bathroom.status is EstimateStatus.COMPLETED
    assert bathroom.total_excl_vat == pytest.approx(27900.0)
    assert kitchen.status is EstimateStatus.DRAFT
    assert kitchen.city == "Uppsala"

    items = store.children[1]
    assert [c.moment for c in items] == ["Rivning", "Kakel", "Elinstallation"]
    assert [c.sort_order for c in items] == [0, 1, 2]
    assert [c.item_type for c in items] == [ItemType.LABOR, ItemType.MATERIAL, ItemType.SUBCONTRACTOR]
    assert items[0].subtotal == pytest.approx(4400.0)
    assert items[1].subtotal == pytest.approx(5400.0)
    assert items[2].source_row == 5
    assert len(store.children[2]) == 1


def test_second_run_imports_nothing(write_config, make_xlsx, monkeypatch, store, capsys):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
    path = make_xlsx("offerter.xlsx", FLAT_EXPORT)

    assert _run([str(path)], store) == 0
    capsys.readouterr()
    assert _run([str(path)], store) == 0
    out = capsys.readouterr().out

    assert "SUMMARY parents=0/0 items=0 duplicates=3 skipped_rows=1" in out
    assert len(store.parents) == 2
    assert "[DUPLICATE] offer=2024-101" in out


def test_grouped_export_import(write_config, make_xlsx, monkeypatch, store, capsys):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
    path = make_xlsx(
        "sammanstallning.xlsx",
        [
            ["Offertnr", "Kund", "Ort", "Summa ex moms", "Summa inkl moms", "Status"],
            ["A-1", "Anna", "Lund", "10 000", "12 500", "Godkänd"],
            ["A-2", None, None, "8 000,50", "10 000,63", None],
            [None, "Bertil", "Malmö", "5", "6", None],
        ],
    )

    assert _run([str(path)], store) == 0
    out = capsys.readouterr().out
    assert "SUMMARY parents=2/2 items=0 duplicates=0 skipped_rows=1" in out

    first, second = store.parents.values()
    assert first.items == []
    assert first.status is EstimateStatus.COMPLETED
    assert first.total_incl_vat == pytest.approx(12500.0)
    assert second.project_name == "A-2"
    assert second.client_name == "Okänd kund"
    assert second.total_excl_vat == pytest.approx(8000.5)
    assert store.children == {}


def test_only_first_sheet_is_imported(write_config, make_xlsx, monkeypatch, store, capsys):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
    path = make_xlsx(
        "tva_blad.xlsx",
        [["Offertnr", "Moment"], ["F-1", "Rivning"]],
        extra_sheets={"Arkiv": [["Offertnr", "Moment"], ["F-2", "Golv"]]},
    )
    assert _run([str(path)], store) == 0
    assert [p.offer_number for p in store.parents.values()] == ["F-1"]


def test_english_dictionary_from_config(temp_workdir: Path, make_xlsx, monkeypatch, store, capsys):
    from estimate_import.config.synonyms import DEFAULT_SYNONYMS_PATH

    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
    en_path = DEFAULT_SYNONYMS_PATH.with_name("synonyms_en.yml")
    (temp_workdir / "config" / "import.yml").write_text(
        f"user_id: u1\nsynonyms: {en_path.as_posix()}\n", encoding="utf-8"
    )
    path = make_xlsx(
        "quotes.xlsx",
        [["Quote number", "Customer", "Description", "Quantity", "Unit price"],
         ["Q-1", "Acme", "Demolition", 2, "100"],
         ["Q-1", "Acme", "Painting", 1, "50"]],
    )
    assert _run([str(path)], store) == 0
    (parent,) = store.parents.values()
    assert parent.client_name == "Acme"
    assert [c.moment for c in store.children[1]] == ["Demolition", "Painting"]
