"""Monthly payment breakdown by payment type."""

import logging
from dataclasses import dataclass
from typing import List, Sequence

import pandas as pd

from ar_admin.models.records import Payment

logger = logging.getLogger(__name__)

# Payment type -> MonthSummary field prefix
TYPE_FIELDS = {
    "Payment": "payment",
    "Prepayment": "prepayment",
    "Voided Payment": "voided",
    "Voided Check": "voided",
    "Refund": "refund",
    "Balance WO": "balance_wo",
}


@dataclass
class MonthSummary:
    """Payment counts and amounts for one calendar month.

    Types outside TYPE_FIELDS count towards the totals only.
    """

    month_key: str
    month_label: str
    total_payments: int = 0
    total_amount: float = 0.0
    payment_count: int = 0
    payment_amount: float = 0.0
    prepayment_count: int = 0
    prepayment_amount: float = 0.0
    voided_count: int = 0
    voided_amount: float = 0.0
    refund_count: int = 0
    refund_amount: float = 0.0
    balance_wo_count: int = 0
    balance_wo_amount: float = 0.0


def payment_month_summary(payments: Sequence[Payment]) -> List[MonthSummary]:
    """
    Group payments by application month, newest month first.

    Payments without an application date are skipped. Timestamps are
    bucketed by their UTC month; naive values are taken as UTC.

    Example:
        >>> months = payment_month_summary(payments)
        >>> months[0].month_key
        '2024-05'
    """
    rows = [
        {"date": p.application_date, "type": p.type or "", "amount": p.amount}
        for p in payments
        if p.application_date is not None
    ]
    if not rows:
        return []

    df = pd.DataFrame(rows)
    utc = pd.to_datetime(df["date"], utc=True).dt.tz_localize(None)
    df["month"] = utc.dt.to_period("M")
    df["bucket"] = df["type"].map(TYPE_FIELDS)

    summaries: List[MonthSummary] = []
    for period, group in df.groupby("month", sort=True):
        summary = MonthSummary(
            month_key=period.strftime("%Y-%m"),
            month_label=period.strftime("%B %Y"),
            total_payments=len(group),
            total_amount=round(float(group["amount"].sum()), 2),
        )
        for bucket, typed in group.dropna(subset=["bucket"]).groupby("bucket"):
            setattr(summary, f"{bucket}_count", len(typed))
            setattr(summary, f"{bucket}_amount", round(float(typed["amount"].sum()), 2))
        summaries.append(summary)

    summaries.reverse()
    logger.debug(f"Payment breakdown over {len(summaries)} months")
    return summaries
