"""
Plain-text summary of an import run, for the CLI and the logs.
"""

from models.stock_import import ImportAction, ImportLogEntry, ImportResult

RULE = "=" * 60


def _quantity(value) -> str:
    if value is None:
        return "-"
    return f"{value:g}"


def _row_label(entry: ImportLogEntry) -> str:
    return f"row {entry.row}" if entry.row is not None else "row ?"


def _format_updated(entry: ImportLogEntry) -> str:
    match = ""
    if entry.match_type is not None:
        score = f" {entry.match_score:.2f}" if entry.match_score is not None else ""
        match = f" [{entry.match_type.value}{score} → {entry.matched_with}]"
    return (
        f"  {_row_label(entry)}: {entry.official_name} "
        f"{_quantity(entry.old_quantity)} → {_quantity(entry.new_quantity)}{match}"
    )


def _format_created(entry: ImportLogEntry) -> str:
    category = entry.category.value if entry.category is not None else "-"
    return (
        f"  {_row_label(entry)}: {entry.official_name} "
        f"({category}, qty {_quantity(entry.quantity)})"
    )


def _format_skipped(entry: ImportLogEntry) -> str:
    name = entry.official_name or entry.origin_name or "(no name)"
    return f"  {_row_label(entry)}: {name} - {entry.reason or 'skipped'}"


def _format_error(entry: ImportLogEntry) -> str:
    name = entry.official_name or entry.origin_name or "(no name)"
    return f"  {_row_label(entry)}: {name} - {entry.error}"


SECTIONS = [
    (ImportAction.UPDATED, "UPDATED", _format_updated),
    (ImportAction.CREATED, "CREATED", _format_created),
    (ImportAction.SKIPPED, "SKIPPED", _format_skipped),
    (ImportAction.ERROR, "ERRORS", _format_error),
]


def format_report(result: ImportResult) -> str:
    """
    Render an import result as text.

    Totals first, then one section per action in row order, then timing.
    Entries still waiting on a batch write are marked "(not written)".
    """
    lines = [
        RULE,
        f"STOCK IMPORT REPORT - {result.status.value.upper()}",
        RULE,
    ]

    if result.source_error:
        lines.append(f"Source error: {result.source_error}")

    lines.extend([
        f"Processed: {result.total_processed}",
        f"  Updated: {result.updated}",
        f"  Created: {result.created}",
        f"  Skipped: {result.skipped}",
        f"  Errors:  {result.errors}",
    ])

    for action, title, formatter in SECTIONS:
        entries = result.entries_for(action)
        if not entries:
            continue
        lines.append("")
        lines.append(f"{title} ({len(entries)})")
        for entry in entries:
            line = formatter(entry)
            if entry.pending:
                line += " (not written)"
            lines.append(line)

    lines.append("")
    if result.duration_seconds is not None:
        lines.append(f"Duration: {result.duration_seconds:.2f}s")
    lines.append(RULE)

    return "\n".join(lines)
