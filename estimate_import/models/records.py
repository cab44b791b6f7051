from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""Canonical estimate records built from spreadsheet rows.

ParentRecord (an estimate) and ChildRecord (one estimate line) are transient:
they live from grouping until the persistence collaborator assigns an id.
"""

__all__ = [
    "EstimateStatus",
    "ItemType",
    "ChildRecord",
    "ParentRecord",
    "normalize_key",
]


class EstimateStatus(Enum):
    """Estimate status as stored by the persistence layer.

    Anything the sheet does not clearly mark as completed is a draft.
    """
    DRAFT = "draft"
    COMPLETED = "completed"


class ItemType(Enum):
    """Line item classification derived from the category/article column."""
    LABOR = "labor"
    MATERIAL = "material"
    SUBCONTRACTOR = "subcontractor"


@dataclass
class ChildRecord:
    """Canonical estimate line item.

    ``moment`` is the required line text. Numeric fields are ``None`` when the
    sheet left them empty or unparseable.
    """
    moment: str | None = None
    category: str | None = None
    description: str | None = None
    quantity: float | None = None
    unit: str | None = None
    unit_price: float | None = None
    subtotal: float | None = None
    hours: float | None = None
    sort_order: int = 0
    item_type: ItemType = ItemType.LABOR
    type_label: str | None = None  # stored free-text type: category or default label
    source_row: int = -1

    @property
    def effective_subtotal(self) -> float | None:
        """Subtotal as given, else quantity x unit price when both exist."""
        if self.subtotal is not None:
            return self.subtotal
        if self.quantity is not None and self.unit_price is not None:
            return self.quantity * self.unit_price
        return None


@dataclass
class ParentRecord:
    """Canonical estimate with its ordered line items.

    offer_number keeps the casing of the first row it was seen on; identity
    comparisons go through ``key``.
    """
    offer_number: str
    project_name: str | None = None
    client_name: str | None = None
    address: str | None = None
    postal_code: str | None = None
    city: str | None = None
    total_excl_vat: float | None = None
    total_incl_vat: float | None = None
    status: EstimateStatus = EstimateStatus.DRAFT
    items: list[ChildRecord] = field(default_factory=list)
    source_rows: list[int] = field(default_factory=list)

    @property
    def key(self) -> str:
        return normalize_key(self.offer_number)


def normalize_key(value: str) -> str:
    """Business key identity: case-insensitive, surrounding whitespace ignored."""
    return value.strip().lower()
