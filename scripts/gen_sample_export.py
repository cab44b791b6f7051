#!/usr/bin/env python3
"""Generate synthetic estimate exports for manual runs and demos.

Two layouts, matching what the importer detects:
- flat:    one row per line item, estimate columns repeated on every row
- grouped: one row per estimate, no line-item columns

Row 1 is the header row, rows 2+ are data. A few rows without an offer
number are mixed in so the skipped_rows counter has something to count.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

PROJECTS = ["Badrumsrenovering", "Köksbyte", "Fasadmålning", "Takbyte", "Altanbygge", "Fönsterbyte"]
CLIENTS = ["Anna Svensson", "Bertil Andersson", "Cecilia Nilsson", "Brf Linden", "Eklund Bygg AB"]
CITIES = ["Stockholm", "Uppsala", "Göteborg", "Malmö", "Västerås"]
STATUSES = ["Utkast", "Skickad", "Klar", "Godkänd", ""]
# (category, moment, unit, price range)
LINES = [
    ("Arbete", "Rivning", "tim", (450, 650)),
    ("Arbete", "Målning", "tim", (450, 650)),
    ("Material", "Kakel", "kvm", (250, 900)),
    ("Material", "Gips", "st", (80, 200)),
    ("UE", "Elinstallation", "st", (2000, 25000)),
    ("UE", "VVS", "st", (3000, 30000)),
]

FLAT_HEADERS = [
    "Offertnr", "Projektnamn", "Kund", "Ort", "Status", "Summa ex moms",
    "Artikel", "Moment", "Antal", "Enhet", "á-pris", "Summa",
]
GROUPED_HEADERS = ["Offertnr", "Projektnamn", "Kund", "Ort", "Status", "Summa ex moms", "Summa inkl moms"]


def _kr(value: float) -> str:
    """Format like the exports do: space thousands separator, decimal comma, currency."""
    whole, frac = f"{value:,.2f}".split(".")
    return f"{whole.replace(',', ' ')},{frac} kr"


def generate_estimates(estimates: int, seed: int = 42) -> list[dict[str, Any]]:
    rng = np.random.default_rng(seed)
    result = []
    for n in range(estimates):
        lines = []
        for _ in range(int(rng.integers(1, 8))):
            category, moment, unit, (low, high) = LINES[int(rng.integers(len(LINES)))]
            quantity = int(rng.integers(1, 40))
            price = round(float(rng.uniform(low, high)), 2)
            lines.append(
                {"category": category, "moment": moment, "unit": unit,
                 "quantity": quantity, "price": price}
            )
        total = sum(line["quantity"] * line["price"] for line in lines)
        result.append(
            {
                "offer": f"{2024000 + n}",
                "project": str(rng.choice(PROJECTS)),
                "client": str(rng.choice(CLIENTS)),
                "city": str(rng.choice(CITIES)),
                "status": str(rng.choice(STATUSES)),
                "total": total,
                "lines": lines,
            }
        )
    return result


def flat_rows(estimates: list[dict[str, Any]], orphans: int) -> list[list[Any]]:
    rows: list[list[Any]] = [FLAT_HEADERS]
    for est in estimates:
        for i, line in enumerate(est["lines"]):
            # estimate columns are only filled on the first line, like most exports
            head = [est["project"], est["client"], est["city"], est["status"], _kr(est["total"])]
            rows.append(
                [est["offer"], *(head if i == 0 else [None] * len(head)),
                 line["category"], line["moment"], line["quantity"], line["unit"],
                 _kr(line["price"]), None]
            )
    for _ in range(orphans):
        rows.append([None, None, None, None, None, None, "Arbete", "Städning", 2, "tim", "450", None])
    return rows


def grouped_rows(estimates: list[dict[str, Any]], orphans: int) -> list[list[Any]]:
    rows: list[list[Any]] = [GROUPED_HEADERS]
    for est in estimates:
        rows.append(
            [est["offer"], est["project"], est["client"], est["city"], est["status"],
             _kr(est["total"]), _kr(est["total"] * 1.25)]
        )
    for _ in range(orphans):
        rows.append([None, "Utan nummer", None, None, None, "1 000", "1 250"])
    return rows


def create_export(
    output_path: Path,
    estimates: int,
    layout: str = "flat",
    orphans: int = 1,
    sheet_name: str = "Offerter",
    seed: int = 42,
) -> None:
    data = generate_estimates(estimates, seed)
    rows = flat_rows(data, orphans) if layout == "flat" else grouped_rows(data, orphans)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)

    print(f"Created export: {output_path}")
    print(f"  Layout: {layout}")
    print(f"  Estimates: {estimates} (+ {orphans} row(s) without offer number)")
    print(f"  Data rows: {len(rows) - 1}")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate synthetic estimate spreadsheet exports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s data/offerter.xlsx --estimates 50
  %(prog)s data/sammanstallning.xlsx --layout grouped --estimates 200
        """,
    )
    parser.add_argument("output", type=Path, help="Output .xlsx path")
    parser.add_argument("--estimates", type=int, default=20, help="Number of estimates (default: 20)")
    parser.add_argument("--layout", choices=["flat", "grouped"], default="flat")
    parser.add_argument("--orphans", type=int, default=1, help="Rows without offer number (default: 1)")
    parser.add_argument("--sheet", default="Offerter", help="Sheet name (default: Offerter)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args()

    if args.estimates <= 0:
        print("Error: --estimates must be positive", file=sys.stderr)
        return 1
    if args.orphans < 0:
        print("Error: --orphans must not be negative", file=sys.stderr)
        return 1

    try:
        create_export(args.output, args.estimates, args.layout, args.orphans, args.sheet, args.seed)
    except Exception as e:
        print(f"Error generating export: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
