"""Output formatting utilities for the console."""

import datetime as dt
from typing import Any, List, Optional, Sequence

import click

STATUS_COLORS = {
    "completed": "green",
    "success": "green",
    "running": "blue",
    "idle": "white",
    "paused": "yellow",
    "failed": "red",
    "error": "red",
}


def format_success(message: str) -> str:
    """Format a success message with green color.

    Args:
        message: The success message to format

    Returns:
        Formatted success message with color
    """
    return click.style(f"✓ {message}", fg="green", bold=True)


def format_error(message: str) -> str:
    return click.style(f"✗ {message}", fg="red", bold=True)


def format_warning(message: str) -> str:
    return click.style(f"⚠ {message}", fg="yellow", bold=True)


def format_info(message: str) -> str:
    return click.style(f"ℹ {message}", fg="blue")


def format_status(status: Optional[str]) -> str:
    """Colour a sync or job status by its meaning."""
    text = status or "unknown"
    return click.style(text, fg=STATUS_COLORS.get(text.lower(), "white"))


def format_currency(value: Any) -> str:
    try:
        return f"${float(value or 0):,.2f}"
    except (TypeError, ValueError):
        return "$0.00"


def format_timestamp(value: Optional[dt.datetime]) -> str:
    """Local ``YYYY-MM-DD HH:MM``; ``-`` for missing values."""
    if value is None:
        return "-"
    if value.tzinfo is not None:
        value = value.astimezone()
    return value.strftime("%Y-%m-%d %H:%M")


def format_duration(value: Optional[dt.timedelta]) -> str:
    """``1h 02m``, ``4m 05s`` or ``12s``; ``-`` when unknown."""
    if value is None:
        return "-"
    seconds = max(int(value.total_seconds()), 0)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes:02d}m"
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"


def _cell(value: Any) -> str:
    return "-" if value is None else str(value)


def format_table(
    headers: Sequence[str], rows: Sequence[Sequence[Any]], max_width: int = 60
) -> str:
    """Format data as a boxed table.

    Args:
        headers: Column headers
        rows: Data rows; None cells print as ``-``
        max_width: Maximum width for each column, longer cells are truncated

    Returns:
        Formatted table as a string, or an empty string without headers
    """
    if not headers:
        return ""

    table: List[List[str]] = [[_cell(c) for c in row] for row in rows]

    col_widths = [len(h) for h in headers]
    for row in table:
        for i, cell in enumerate(row[: len(col_widths)]):
            col_widths[i] = max(col_widths[i], len(cell))
    col_widths = [min(w, max_width) for w in col_widths]

    separator = "+" + "+".join("-" * (w + 2) for w in col_widths) + "+"

    def render(cells: Sequence[str]) -> str:
        padded = [
            f" {cells[i][: col_widths[i]] if i < len(cells) else '':<{col_widths[i]}} "
            for i in range(len(col_widths))
        ]
        return "|" + "|".join(padded) + "|"

    lines = [separator, render(list(headers)), separator]
    if table:
        lines.extend(render(row) for row in table)
        lines.append(separator)
    return "\n".join(lines)
