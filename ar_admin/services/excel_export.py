"""
Excel export of tabular panel data.

Layout: optional title row, optional subtitle row, a blank separator when
either is present, the header row, then one row per record.
"""

import datetime as dt
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

import pandas as pd
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter

logger = logging.getLogger(__name__)

MIN_COLUMN_WIDTH = 15


@dataclass
class ExcelColumn:
    """One exported column.

    Attributes:
        header: Header text
        key: Record key to read
        width: Column width in characters, default max(len(header), 15)
        format: Converts the raw value before it is written
    """

    header: str
    key: str
    width: Optional[int] = None
    format: Optional[Callable[[Any], Any]] = None

    @property
    def effective_width(self) -> int:
        return self.width or max(len(self.header), MIN_COLUMN_WIDTH)


def _to_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def format_currency(value: Any) -> str:
    number = _to_float(value)
    return f"${number:.2f}" if number is not None else "$0.00"


def format_percentage(value: Any) -> str:
    number = _to_float(value)
    return f"{number:.2f}%" if number is not None else "0%"


def format_boolean(value: Any) -> str:
    return "Yes" if value else "No"


def _parse_datetime(value: Any) -> Optional[dt.datetime]:
    if isinstance(value, dt.datetime):
        return value
    if isinstance(value, dt.date):
        return dt.datetime.combine(value, dt.time.min)
    stamp = pd.to_datetime(value, errors="coerce")
    return None if pd.isna(stamp) else stamp.to_pydatetime()


def format_date(value: Any) -> str:
    if not value:
        return ""
    parsed = _parse_datetime(value)
    return parsed.strftime("%m/%d/%Y") if parsed else str(value)


def format_datetime(value: Any) -> str:
    if not value:
        return ""
    parsed = _parse_datetime(value)
    return parsed.strftime("%m/%d/%Y, %I:%M %p") if parsed else str(value)


def build_frame(
    columns: Sequence[ExcelColumn], rows: Iterable[Dict[str, Any]]
) -> pd.DataFrame:
    """Formatted records as a DataFrame with the column headers."""
    records: List[List[Any]] = []
    for row in rows:
        values = []
        for col in columns:
            value = row.get(col.key)
            values.append(col.format(value) if col.format else value)
        records.append(values)
    return pd.DataFrame(records, columns=[col.header for col in columns])


def export_to_excel(
    path: Union[str, Path],
    columns: Sequence[ExcelColumn],
    rows: Iterable[Dict[str, Any]],
    title: Optional[str] = None,
    subtitle: Optional[str] = None,
    sheet_name: str = "Sheet1",
) -> Path:
    """
    Write ``rows`` to an .xlsx workbook.

    Args:
        path: Target file; ``.xlsx`` is appended when missing
        columns: Columns to export, in order
        rows: Records keyed by ``ExcelColumn.key``
        title: Bold title merged across the columns
        subtitle: Italic subtitle merged across the columns
        sheet_name: Worksheet name

    Returns:
        Path of the written file
    """
    if not columns:
        raise ValueError("At least one column is required")

    target = Path(path)
    if target.suffix.lower() != ".xlsx":
        target = target.with_name(target.name + ".xlsx")

    frame = build_frame(columns, rows)
    preamble = int(bool(title)) + int(bool(subtitle))
    header_row = preamble + 1 if preamble else 0

    with pd.ExcelWriter(target, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=sheet_name, index=False, startrow=header_row)
        sheet = writer.sheets[sheet_name]

        last_col = len(columns)
        row = 1
        for text, font in (
            (title, Font(bold=True, size=16)),
            (subtitle, Font(italic=True, size=12)),
        ):
            if not text:
                continue
            cell = sheet.cell(row=row, column=1, value=text)
            cell.font = font
            cell.alignment = Alignment(horizontal="center")
            if last_col > 1:
                sheet.merge_cells(
                    start_row=row, start_column=1, end_row=row, end_column=last_col
                )
            row += 1

        for index, col in enumerate(columns, start=1):
            header = sheet.cell(row=header_row + 1, column=index)
            header.font = Font(bold=True)
            header.alignment = Alignment(horizontal="center")
            sheet.column_dimensions[get_column_letter(index)].width = (
                col.effective_width
            )

    logger.info(f"Exported {len(frame)} rows to {target}")
    return target
