from __future__ import annotations

import math
import re
from typing import Any

from ..models.records import EstimateStatus, ItemType
from ..models.synonyms import SynonymDictionary

"""Locale-tolerant cell value parsing.

Handles the three numeric formats seen in Swedish exports: space thousands
separators ("1 234"), a decimal comma ("12,5") and currency suffixes
("450 kr"). Parsing never raises; anything unusable is ``None``.
"""

__all__ = [
    "parse_number",
    "parse_status",
    "classify_category",
]

_WHITESPACE = re.compile(r"\s+")
_NON_NUMERIC = re.compile(r"[^0-9.\-]")
# Leading float literal; trailing garbage after it is ignored
_FLOAT_PREFIX = re.compile(r"^[-]?(?:\d+\.?\d*|\.\d+)")


def parse_number(raw: Any) -> float | None:
    """Parse a loosely formatted number, returning ``None`` when absent.

    Steps: drop all whitespace, turn the first comma into a decimal point,
    drop every character other than digits, '.' and '-', then read the
    longest leading float literal.

    >>> parse_number("1 234,56 kr")
    1234.56
    >>> parse_number("") is None
    True
    """
    if raw is None:
        return None
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
        return None if math.isnan(value) or math.isinf(value) else value

    text = _WHITESPACE.sub("", str(raw))
    if not text:
        return None
    text = text.replace(",", ".", 1)
    text = _NON_NUMERIC.sub("", text)
    match = _FLOAT_PREFIX.match(text)
    if match is None:
        return None
    try:
        return float(match.group(0))
    except ValueError:  # pragma: no cover - regex only admits float literals
        return None


def parse_status(raw: str | None, synonyms: SynonymDictionary) -> EstimateStatus:
    """Map a free-text status cell to draft/completed by keyword."""
    if not raw:
        return synonyms.default_status
    lowered = raw.strip().lower()
    if any(keyword in lowered for keyword in synonyms.status_keywords):
        return synonyms.completed_status
    return synonyms.default_status


def classify_category(category: str | None, synonyms: SynonymDictionary) -> ItemType:
    """Derive the line item type from its category/article text."""
    if not category:
        return ItemType.LABOR
    lowered = category.strip().lower()
    if lowered in synonyms.material_categories:
        return ItemType.MATERIAL
    if lowered in synonyms.subcontractor_categories:
        return ItemType.SUBCONTRACTOR
    return ItemType.LABOR
