"""Analytics commands with optional Excel export."""

import dataclasses
import datetime as dt
from typing import Optional

import click

from ar_admin.analytics import invoice_status_summary, payment_month_summary
from ar_admin.cli.context import Console, ensure_valid, pass_console
from ar_admin.cli.error_handlers import with_error_handling
from ar_admin.cli.utils.formatters import (
    format_currency,
    format_info,
    format_success,
    format_table,
)
from ar_admin.cli.utils.progress import ProgressTracker
from ar_admin.models.records import Invoice, Payment
from ar_admin.services.excel_export import ExcelColumn, export_to_excel
from ar_admin.services.excel_export import format_currency as excel_currency
from ar_admin.services.excel_export import format_date
from ar_admin.validators import FormValidators, ValidationReport

INVOICE_COLUMNS = (
    "id, reference_number, customer_name, type, status, date, due_date, "
    "amount, balance, color_status"
)
PAYMENT_COLUMNS = "id, reference_number, type, customer_name, application_date, amount"

INVOICE_EXPORT = [
    ExcelColumn("Reference", "reference_number"),
    ExcelColumn("Customer", "customer_name", width=30),
    ExcelColumn("Status", "status"),
    ExcelColumn("Date", "date", format=format_date),
    ExcelColumn("Due Date", "due_date", format=format_date),
    ExcelColumn("Amount", "amount", format=excel_currency),
    ExcelColumn("Balance", "balance", format=excel_currency),
    ExcelColumn("Color", "color_status"),
]

PAYMENT_EXPORT = [
    ExcelColumn("Month", "month_label", width=18),
    ExcelColumn("Payments", "total_payments"),
    ExcelColumn("Total", "total_amount", format=excel_currency),
    ExcelColumn("Payment", "payment_amount", format=excel_currency),
    ExcelColumn("Prepayment", "prepayment_amount", format=excel_currency),
    ExcelColumn("Voided", "voided_amount", format=excel_currency),
    ExcelColumn("Refund", "refund_amount", format=excel_currency),
    ExcelColumn("Balance WO", "balance_wo_amount", format=excel_currency),
]


@click.group(name="analytics")
def analytics_group():
    """Invoice and payment analytics."""


@analytics_group.command(name="invoices")
@click.option("--open-only", is_flag=True, help="Only invoices with a balance")
@click.option("--export", "export_path", type=click.Path(dir_okay=False), default=None)
@pass_console
def invoices(console: Console, open_only: bool, export_path: Optional[str]):
    """Summarize invoice totals, overdue balance and colour status."""
    with with_error_handling(console.debug):
        console.open_view("invoice-analytics")
        tracker = ProgressTracker(["Load invoices", "Summarize", "Export"])

        click.echo(format_info(tracker.get_current_message()))

        def query():
            builder = console.client.table("acumatica_invoices").select(INVOICE_COLUMNS)
            return builder.gt("balance", 0) if open_only else builder

        rows = console.client.fetch_all(query, page_size=console.config.page_size)
        tracker.advance(f"{len(rows)} invoices loaded")

        click.echo(format_info(tracker.get_current_message()))
        summary = invoice_status_summary([Invoice(**row) for row in rows])
        tracker.advance()

        click.echo(
            format_table(
                ["Invoices", "Amount", "Balance", "Overdue", "Overdue Balance"],
                [
                    [
                        summary.total_invoices,
                        format_currency(summary.total_amount),
                        format_currency(summary.total_balance),
                        summary.overdue_count,
                        format_currency(summary.overdue_balance),
                    ]
                ],
            )
        )
        click.echo(
            format_table(
                ["Colour", "Invoices", "Share"],
                [
                    [color, count, f"{summary.color_percentage(color)}%"]
                    for color, count in summary.color_counts.items()
                ],
            )
        )

        if export_path:
            click.echo(format_info(tracker.get_current_message()))
            target = export_to_excel(
                export_path,
                INVOICE_EXPORT,
                rows,
                title="Invoice Analytics",
                subtitle=f"Generated {dt.date.today().isoformat()}",
                sheet_name="Invoices",
            )
            tracker.advance()
            click.echo(format_success(f"Exported to {target}"))


@analytics_group.command(name="payments")
@click.option("--start", type=click.DateTime(["%Y-%m-%d"]), default=None)
@click.option("--end", type=click.DateTime(["%Y-%m-%d"]), default=None)
@click.option("--export", "export_path", type=click.Path(dir_okay=False), default=None)
@pass_console
def payments(
    console: Console,
    start: Optional[dt.datetime],
    end: Optional[dt.datetime],
    export_path: Optional[str],
):
    """Break payments down by month and payment type.

    Example:
        ar-admin analytics payments --start 2024-01-01 --export payments.xlsx
    """
    with with_error_handling(console.debug):
        if start and end:
            report = ValidationReport()
            FormValidators.validate_date_order(
                start.date(), end.date(), report, "start", "end"
            )
            ensure_valid(report)

        console.open_view("payment-analytics")

        def query():
            builder = console.client.table("acumatica_payments").select(
                PAYMENT_COLUMNS
            )
            if start:
                builder = builder.gte("application_date", start.date().isoformat())
            if end:
                day_after = end.date() + dt.timedelta(days=1)
                builder = builder.lt("application_date", day_after.isoformat())
            return builder.order("application_date", ascending=False)

        rows = console.client.fetch_all(query, page_size=console.config.page_size)
        months = payment_month_summary([Payment(**row) for row in rows])
        if not months:
            click.echo(format_info("No payments in range."))
            return

        click.echo(
            format_table(
                ["Month", "Count", "Total", "Payment", "Prepay", "Voided", "Refund"],
                [
                    [
                        m.month_label,
                        m.total_payments,
                        format_currency(m.total_amount),
                        format_currency(m.payment_amount),
                        format_currency(m.prepayment_amount),
                        format_currency(m.voided_amount),
                        format_currency(m.refund_amount),
                    ]
                    for m in months
                ],
            )
        )

        if export_path:
            target = export_to_excel(
                export_path,
                PAYMENT_EXPORT,
                [dataclasses.asdict(m) for m in months],
                title="Payment Analytics",
                subtitle=f"{len(rows)} payments over {len(months)} months",
                sheet_name="Payments",
            )
            click.echo(format_success(f"Exported to {target}"))
