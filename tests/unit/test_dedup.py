from __future__ import annotations

from estimate_import.models.records import ChildRecord, ParentRecord
from estimate_import.services.dedup import (
    build_preview,
    normalize_existing_keys,
    partition_by_existing,
)


def _parent(offer: str, items: int = 0) -> ParentRecord:
    return ParentRecord(offer_number=offer, items=[ChildRecord(moment=f"m{i}") for i in range(items)])


def test_normalize_existing_keys_drops_blanks() -> None:
    assert normalize_existing_keys([" K1 ", "k2", "", "  ", None]) == frozenset({"k1", "k2"})


def test_partition_splits_new_and_duplicate_in_order() -> None:
    parents = [_parent("K1", 2), _parent("K2", 1), _parent("K3", 3)]
    partition = partition_by_existing(parents, {"k2"})
    assert [p.offer_number for p in partition.new] == ["K1", "K3"]
    assert [p.offer_number for p in partition.duplicate] == ["K2"]
    assert partition.new_item_count == 5


def test_partition_matches_case_and_whitespace_insensitively() -> None:
    partition = partition_by_existing([_parent("Ab-7")], [" aB-7 "])
    assert partition.new == []
    assert len(partition.duplicate) == 1


def test_second_run_over_same_keys_has_nothing_new() -> None:
    parents = [_parent("K1"), _parent("K2")]
    first = partition_by_existing(parents, set())
    stored = {p.offer_number for p in first.new}
    second = partition_by_existing(parents, stored)
    assert len(first.new) == 2
    assert second.new == []
    assert len(second.duplicate) == 2


def test_build_preview_limits_and_flags_duplicates() -> None:
    parents = [_parent("K1"), _parent("K2"), _parent("K3")]
    preview = build_preview(parents, {"K2"}, limit=2)
    assert [(e.record.offer_number, e.is_duplicate) for e in preview] == [
        ("K1", False),
        ("K2", True),
    ]
    assert build_preview(parents, set(), limit=0) == []
