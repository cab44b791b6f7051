from __future__ import annotations

from ..models.import_outcome import ImportOutcome, ItemsImportOutcome
from ..models.records import ChildRecord
from .dedup import PreviewEntry

"""SUMMARY line and preview rendering.

SUMMARY format:
SUMMARY parents={imported}/{new} items={items} duplicates={dup}
skipped_rows={skipped} failed={failed} not_attempted={n} elapsed_sec={elapsed}

Items-only runs:
SUMMARY items={imported} mode={append|replace} estimate={offer}
removed={removed} skipped_rows={skipped} elapsed_sec={elapsed}
"""


def _format_seconds(seconds: float) -> str:
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        # avoid scientific notation for tiny values
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


def render_summary_line(outcome: ImportOutcome) -> str:
    """Render the SUMMARY line for an import outcome.

    Examples:
        >>> outcome = ImportOutcome(imported_parents=2, duplicate_parents=1,
        ...     skipped_missing_key=0, imported_children=5, elapsed_seconds=2.0)
        >>> render_summary_line(outcome)
        'SUMMARY parents=2/2 items=5 duplicates=1 skipped_rows=0 failed=0 not_attempted=0 elapsed_sec=2'
    """
    return (
        f"SUMMARY parents={outcome.imported_parents}/{outcome.new_parents} "
        f"items={outcome.imported_children} "
        f"duplicates={outcome.duplicate_parents} "
        f"skipped_rows={outcome.skipped_missing_key} "
        f"failed={outcome.failed_parents + outcome.failed_child_batches} "
        f"not_attempted={outcome.not_attempted} "
        f"elapsed_sec={_format_seconds(outcome.elapsed_seconds)}"
    )


def _amount(value: float | None) -> str:
    if value is None:
        return "-"
    return f"{value:,.2f}".replace(",", " ")


def render_preview(entries: list[PreviewEntry]) -> list[str]:
    """One line per previewed estimate, duplicates marked."""
    lines = []
    for entry in entries:
        r = entry.record
        flag = "DUPLICATE" if entry.is_duplicate else "new"
        lines.append(
            f"[{flag}] offer={r.offer_number} project={r.project_name!r} client={r.client_name!r} "
            f"status={r.status.value} items={len(r.items)} total_excl_vat={_amount(r.total_excl_vat)}"
        )
    return lines


def render_items_summary_line(outcome: ItemsImportOutcome) -> str:
    return (
        f"SUMMARY items={outcome.imported_items} "
        f"mode={outcome.mode.value} "
        f"estimate={outcome.offer_number} "
        f"removed={outcome.removed_items} "
        f"skipped_rows={outcome.skipped_rows} "
        f"elapsed_sec={_format_seconds(outcome.elapsed_seconds)}"
    )


def render_item_preview(items: list[ChildRecord]) -> list[str]:
    return [
        f"[item] row={c.source_row} moment={c.moment!r} type={c.type_label!r} "
        f"quantity={c.quantity if c.quantity is not None else '-'} unit={c.unit or '-'} "
        f"unit_price={_amount(c.unit_price)} subtotal={_amount(c.subtotal)}"
        for c in items
    ]
