from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

"""RawRow model: one decoded spreadsheet row.

A RawRow is produced by the sheet reader and never modified afterwards. The
key domain is fixed to the sheet's header row at decode time; lookups for
headers outside that domain return an empty cell.
"""

__all__ = [
    "RawRow",
    "cell_text",
]


def cell_text(value: Any) -> str:
    """Render a raw cell value as stripped text ("" for an empty cell).

    Integral floats (pandas reads numeric id columns as float) are rendered
    without the trailing ``.0`` so offer numbers such as ``1001`` survive.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float):
        if value != value:  # NaN
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


@dataclass(frozen=True)
class RawRow:
    """One data row of the first worksheet, keyed by raw header.

    row_number is the 1-based spreadsheet row (the header row is row 1, so the
    first data row is 2).
    """
    row_number: int
    cells: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "cells", MappingProxyType(dict(self.cells)))

    def get(self, header: str) -> Any:
        return self.cells.get(header)

    def text(self, header: str) -> str:
        return cell_text(self.cells.get(header))

    def is_blank(self) -> bool:
        return all(cell_text(v) == "" for v in self.cells.values())
