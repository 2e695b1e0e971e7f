"""Invoice and payment analytics built on pandas."""

from ar_admin.analytics.invoice_analytics import (
    InvoiceAnalytics,
    invoice_status_summary,
)
from ar_admin.analytics.payment_analytics import MonthSummary, payment_month_summary

__all__ = [
    "InvoiceAnalytics",
    "MonthSummary",
    "invoice_status_summary",
    "payment_month_summary",
]
