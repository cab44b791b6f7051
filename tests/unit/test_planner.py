from __future__ import annotations

import logging

from estimate_import.services.planner import plan_import
from estimate_import.services.structure import SheetStructure


def test_plan_flat_sheet_with_duplicates(make_sheet, synonyms) -> None:
    sheet = make_sheet(
        ["Offertnr", "Kund", "Moment", "Antal"],
        [
            ["K1", "Anna", "Rivning", 1],
            ["K1", "Anna", "Målning", 2],
            ["K2", "Bertil", "Golv", 3],
            [None, "Cecilia", "Tak", 1],
        ],
    )
    plan = plan_import(sheet, existing_keys={"k2"}, synonyms=synonyms)

    assert plan.structure.structure is SheetStructure.FLAT
    assert [p.offer_number for p in plan.grouping.parents] == ["K1", "K2"]
    assert [p.offer_number for p in plan.partition.new] == ["K1"]
    assert plan.partition.new_item_count == 2
    assert plan.duplicate_count == 1
    assert plan.skipped_missing_key == 1
    assert plan.existing_keys == frozenset({"k2"})

    preview = plan.preview(5)
    assert [(e.record.offer_number, e.is_duplicate) for e in preview] == [("K1", False), ("K2", True)]


def test_plan_grouped_sheet(make_sheet, synonyms) -> None:
    sheet = make_sheet(
        ["Offertnr", "Projektnamn", "Summa inkl moms"],
        [["K1", "Kök", "10 000"], ["K2", "Bad", "20 000"]],
    )
    plan = plan_import(sheet, existing_keys=[], synonyms=synonyms)
    assert plan.structure.structure is SheetStructure.GROUPED
    assert len(plan.partition.new) == 2
    assert plan.partition.new_item_count == 0


def test_plan_without_key_column_skips_everything(make_sheet, synonyms, caplog) -> None:
    caplog.set_level(logging.WARNING, logger="estimate_import")
    sheet = make_sheet(["Kund", "Moment"], [["Anna", "x"], ["Bertil", "y"]])
    plan = plan_import(sheet, existing_keys=set(), synonyms=synonyms)
    assert plan.grouping.parents == []
    assert plan.skipped_missing_key == 2
    assert "no column maps to the offer number" in caplog.text
