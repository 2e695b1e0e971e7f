"""Invoice status analytics.

Summarizes invoice totals, overdue exposure and the collector colour
distribution for the invoice analytics panel.
"""

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

import pandas as pd

from ar_admin.models.records import Invoice

logger = logging.getLogger(__name__)

COLOR_BUCKETS = ("red", "yellow", "green", "none")


@dataclass
class InvoiceAnalytics:
    """Aggregated view over a set of invoices.

    Attributes:
        total_invoices: Number of invoices
        total_amount: Sum of invoice amounts
        total_balance: Sum of open balances
        overdue_count: Invoices with an open balance past their due date
        overdue_balance: Open balance of those invoices
        color_counts: Invoices per colour status; ``none`` when unset

    Example:
        >>> summary = invoice_status_summary(invoices, today=dt.date(2024, 5, 1))
        >>> summary.color_counts["red"]
        3
    """

    total_invoices: int = 0
    total_amount: float = 0.0
    total_balance: float = 0.0
    overdue_count: int = 0
    overdue_balance: float = 0.0
    color_counts: Dict[str, int] = field(
        default_factory=lambda: {bucket: 0 for bucket in COLOR_BUCKETS}
    )

    def color_percentage(self, color: str) -> float:
        if self.total_invoices == 0:
            return 0.0
        return round(self.color_counts.get(color, 0) * 100 / self.total_invoices, 1)


def invoice_status_summary(
    invoices: Sequence[Invoice], today: Optional[dt.date] = None
) -> InvoiceAnalytics:
    """Build InvoiceAnalytics from invoice records.

    Args:
        invoices: Invoices to summarize
        today: Reference date for overdue checks, defaults to today

    Returns:
        InvoiceAnalytics; all zeros for an empty input
    """
    if not invoices:
        return InvoiceAnalytics()

    reference = pd.Timestamp(today or dt.date.today())
    df = pd.DataFrame(
        [
            {
                "amount": inv.amount,
                "balance": inv.balance,
                "due_date": inv.due_date,
                "color": inv.color_status or "none",
            }
            for inv in invoices
        ]
    )
    due = pd.to_datetime(df["due_date"], errors="coerce")
    overdue = (df["balance"] > 0) & due.notna() & (due < reference)

    counts = df["color"].value_counts()
    summary = InvoiceAnalytics(
        total_invoices=len(df),
        total_amount=round(float(df["amount"].sum()), 2),
        total_balance=round(float(df["balance"].sum()), 2),
        overdue_count=int(overdue.sum()),
        overdue_balance=round(float(df.loc[overdue, "balance"].sum()), 2),
        color_counts={bucket: int(counts.get(bucket, 0)) for bucket in COLOR_BUCKETS},
    )

    logger.debug(
        f"Invoice summary: {summary.total_invoices} invoices, "
        f"{summary.overdue_count} overdue"
    )
    return summary
