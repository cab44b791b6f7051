from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from ..models.synonyms import ItemField, ParentField, SynonymDictionary

"""Header normalization and synonym-based column mapping.

Both dictionaries are applied to the same header row independently, so one
raw header (e.g. "Pris") can resolve to a parent field and an item field at
the same time. The structure detector decides which one matters.
"""

__all__ = [
    "ColumnMapping",
    "normalize_header",
    "map_columns",
    "map_sheet_columns",
]

_WHITESPACE_RUN = re.compile(r"\s+")

F = TypeVar("F", bound=Enum)


def normalize_header(raw: str) -> str:
    """Lowercase, trim and collapse internal whitespace runs to one space."""
    return _WHITESPACE_RUN.sub(" ", str(raw).strip().lower())


def map_columns(headers: Iterable[str], dictionary: Mapping[str, F]) -> dict[str, F]:
    """Map raw headers to canonical fields; unknown headers are left out.

    Result keeps header order, keyed by the raw (un-normalized) header.
    """
    mapping: dict[str, F] = {}
    for header in headers:
        target = dictionary.get(normalize_header(header))
        if target is not None:
            mapping[header] = target
    return mapping


@dataclass(frozen=True)
class ColumnMapping:
    """Parent- and item-field mappings computed for one sheet."""
    parent: dict[str, ParentField]
    item: dict[str, ItemField]

    def parent_headers(self, target: ParentField) -> list[str]:
        return [h for h, f in self.parent.items() if f is target]

    def item_headers(self, target: ItemField) -> list[str]:
        return [h for h, f in self.item.items() if f is target]

    @property
    def key_header(self) -> str | None:
        """First header mapped to the business key, used for structure detection."""
        headers = self.parent_headers(ParentField.OFFER_NUMBER)
        return headers[0] if headers else None

    def describe(self) -> str:
        parent = ", ".join(f"{h!r}->{f.value}" for h, f in self.parent.items()) or "-"
        item = ", ".join(f"{h!r}->{f.value}" for h, f in self.item.items()) or "-"
        return f"parent=[{parent}] item=[{item}]"


def map_sheet_columns(headers: Iterable[str], synonyms: SynonymDictionary) -> ColumnMapping:
    headers = list(headers)
    return ColumnMapping(
        parent=map_columns(headers, synonyms.parent_fields),
        item=map_columns(headers, synonyms.item_fields),
    )
