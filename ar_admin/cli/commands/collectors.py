"""Collector control and progress commands."""

from typing import Optional

import click

from ar_admin.cli.context import Console, ensure_valid, pass_console, require_action
from ar_admin.cli.error_handlers import with_error_handling
from ar_admin.cli.utils.formatters import (
    format_currency,
    format_info,
    format_success,
    format_table,
)
from ar_admin.services.activity_log import log_activity
from ar_admin.services.collectors import (
    PROGRESS_WINDOWS,
    CollectorService,
    summarize_progress,
)
from ar_admin.validators import FormValidators, ValidationReport


@click.group(name="collectors")
def collectors_group():
    """Collector assignments and progress."""


@collectors_group.command(name="list")
@pass_console
def list_collectors(console: Console):
    """Show users that can be assigned invoices."""
    with with_error_handling(console.debug):
        console.open_view("collector-control")
        collectors = CollectorService(console.client).available_collectors()
        if not collectors:
            click.echo(format_info("No collectors available."))
            return
        rows = [[c.id, c.display_name, c.email, c.role] for c in collectors]
        click.echo(format_table(["ID", "Name", "Email", "Role"], rows))


@collectors_group.command(name="reassign")
@click.argument("invoice_id")
@click.option("--to", "collector_id", required=True, help="New collector user id")
@click.option("--notes", default=None, help="Reason for the change")
@pass_console
def reassign(
    console: Console, invoice_id: str, collector_id: str, notes: Optional[str]
):
    """Move an invoice to another collector.

    Example:
        ar-admin collectors reassign 7b0c... --to 91ad... --notes "Territory"
    """
    with with_error_handling(console.debug):
        report = ValidationReport()
        FormValidators.validate_required(invoice_id, "invoice_id", report)
        FormValidators.validate_required(collector_id, "collector", report)
        ensure_valid(report)

        panel = console.open_view("collector-control")
        require_action(panel, "edit")

        CollectorService(console.client).reassign_invoice(
            invoice_id, collector_id, assigned_by=panel.auth.actor.id, notes=notes
        )
        log_activity(
            console.client,
            panel.auth.actor.id,
            "reassign_invoice",
            entity_type="invoice",
            entity_id=invoice_id,
            details={"new_collector_id": collector_id},
        )
        click.echo(format_success("Invoice reassigned"))


@collectors_group.command(name="progress")
@click.option(
    "--days",
    type=click.Choice([str(d) for d in PROGRESS_WINDOWS]),
    default="30",
    show_default=True,
)
@click.option(
    "--collector", "collector_id", default=None, help="Defaults to the current user"
)
@pass_console
def progress(console: Console, days: str, collector_id: Optional[str]):
    """Show daily closed invoices and status changes."""
    with with_error_handling(console.debug):
        panel = console.open_view("collector-progress")
        points = CollectorService(console.client).progress(
            collector_id or panel.user_id, days=int(days)
        )
        if not points:
            click.echo(format_info(f"No activity in the last {days} days."))
            return

        rows = [
            [
                p.date.isoformat(),
                p.closed_count,
                format_currency(p.closed_amount),
                p.red_status_count,
                p.no_change_count,
                p.total_assigned,
            ]
            for p in points
        ]
        click.echo(
            format_table(
                ["Date", "Closed", "Amount", "Red", "No change", "Assigned"], rows
            )
        )

        summary = summarize_progress(points)
        click.echo(
            format_info(
                f"{summary.total_closed} closed for "
                f"{format_currency(summary.closed_amount)}, "
                f"{summary.red_count} red, {summary.no_change_count} unchanged"
            )
        )
