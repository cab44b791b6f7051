from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from .records import EstimateStatus

"""Canonical field names and the synonym dictionary model.

A SynonymDictionary is plain configuration data: two many-to-one tables from
normalized header text to a canonical field, plus the locale-specific words
used for status parsing, item classification and required-field placeholders.
Instances are loaded by ``estimate_import.config.synonyms`` and injected into
the column mapper and grouper.
"""

__all__ = [
    "ParentField",
    "ItemField",
    "Placeholders",
    "SynonymDictionary",
]


class ParentField(Enum):
    """Estimate-level canonical fields."""
    OFFER_NUMBER = "offer_number"  # business key
    PROJECT_NAME = "project_name"
    CLIENT_NAME = "client_name"
    ADDRESS = "address"
    POSTAL_CODE = "postal_code"
    CITY = "city"
    STATUS = "status"
    TOTAL_EXCL_VAT = "total_excl_vat"
    TOTAL_INCL_VAT = "total_incl_vat"


class ItemField(Enum):
    """Line-item canonical fields."""
    CATEGORY = "category"
    MOMENT = "moment"
    DESCRIPTION = "description"
    QUANTITY = "quantity"
    UNIT = "unit"
    UNIT_PRICE = "unit_price"
    SUBTOTAL = "subtotal"
    HOURS = "hours"


NUMERIC_PARENT_FIELDS = frozenset({ParentField.TOTAL_EXCL_VAT, ParentField.TOTAL_INCL_VAT})
NUMERIC_ITEM_FIELDS = frozenset({
    ItemField.QUANTITY,
    ItemField.UNIT_PRICE,
    ItemField.SUBTOTAL,
    ItemField.HOURS,
})
# Item columns whose presence marks a sheet as one-row-per-line-item
STRUCTURE_ITEM_FIELDS = frozenset({
    ItemField.QUANTITY,
    ItemField.UNIT_PRICE,
    ItemField.MOMENT,
    ItemField.DESCRIPTION,
})


@dataclass(frozen=True)
class Placeholders:
    """Fallback values applied after grouping.

    A missing project name falls back to the offer number, not to a fixed text.
    """
    client_name: str = "Okänd kund"
    moment: str = "Importerad rad"
    item_type_label: str = "Arbete"


@dataclass(frozen=True)
class SynonymDictionary:
    """Versioned header synonym tables for one export language."""
    version: str
    locale: str
    parent_fields: Mapping[str, ParentField]
    item_fields: Mapping[str, ItemField]
    status_keywords: tuple[str, ...] = ()
    default_status: EstimateStatus = EstimateStatus.DRAFT
    completed_status: EstimateStatus = EstimateStatus.COMPLETED
    placeholders: Placeholders = field(default_factory=Placeholders)
    material_categories: frozenset[str] = frozenset()
    subcontractor_categories: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "parent_fields", MappingProxyType(dict(self.parent_fields)))
        object.__setattr__(self, "item_fields", MappingProxyType(dict(self.item_fields)))

    def describe(self) -> str:
        return (
            f"synonyms locale={self.locale} version={self.version} "
            f"parent_synonyms={len(self.parent_fields)} item_synonyms={len(self.item_fields)}"
        )
