"""Reminder commands."""

import datetime as dt
from typing import Optional, Tuple

import click
from pydantic import ValidationError

from ar_admin.cli.context import Console, ensure_valid, pass_console
from ar_admin.cli.error_handlers import with_error_handling
from ar_admin.cli.utils.formatters import (
    format_info,
    format_success,
    format_table,
    format_timestamp,
)
from ar_admin.models.reminders import (
    REMINDER_PRIORITIES,
    REMINDER_TYPES,
    ReminderDraft,
)
from ar_admin.services.reminders import (
    REMINDER_FILTERS,
    ReminderService,
    filter_reminders,
)
from ar_admin.validators import FormValidators, ValidationReport


def _service(console: Console) -> ReminderService:
    return ReminderService(console.client, console.functions)


def _shorten(text: Optional[str], width: int = 40) -> str:
    if not text:
        return ""
    text = " ".join(text.split())
    return text if len(text) <= width else text[: width - 3] + "..."


@click.group(name="reminders")
def reminders_group():
    """Your invoice and ticket reminders."""


@reminders_group.command(name="list")
@click.option(
    "--filter",
    "which",
    type=click.Choice(REMINDER_FILTERS),
    default="all",
    show_default=True,
    help="Which reminders to show; day boundaries are local midnight",
)
@pass_console
def list_reminders(console: Console, which: str):
    """Show reminders, earliest first."""
    with with_error_handling(console.debug):
        panel = console.open_view("reminders")
        reminders = _service(console).list_for_user(panel.user_id)
        reminders = filter_reminders(reminders, which)

        if not reminders:
            click.echo(format_info("No reminders."))
            return

        rows = [
            [
                r.id,
                format_timestamp(r.reminder_date),
                r.title,
                _shorten(r.description),
                r.priority,
                r.invoice_reference or r.ticket_number,
                r.customer_name,
                "done" if r.is_completed else "open",
            ]
            for r in reminders
        ]
        click.echo(
            format_table(
                [
                    "ID",
                    "When",
                    "Title",
                    "Description",
                    "Priority",
                    "Reference",
                    "Customer",
                    "State",
                ],
                rows,
            )
        )


@reminders_group.command(name="create")
@click.option("--title", required=True)
@click.option(
    "--date", "reminder_date", type=click.DateTime(["%Y-%m-%d"]), required=True
)
@click.option(
    "--time",
    "reminder_time",
    type=click.DateTime(["%H:%M"]),
    default=None,
    help="Local time, default 09:00",
)
@click.option("--description", default=None)
@click.option("--priority", type=click.Choice(REMINDER_PRIORITIES), default="medium")
@click.option(
    "--type", "reminder_type", type=click.Choice(REMINDER_TYPES), default="payment"
)
@click.option(
    "--email/--no-email",
    "send_email",
    default=False,
    help="Email me when the reminder is due",
)
@click.option("--invoice-id", default=None)
@click.option("--invoice-ref", default=None, help="Invoice reference number")
@click.option("--ticket-id", default=None)
@pass_console
def create(
    console: Console,
    title: str,
    reminder_date: dt.datetime,
    reminder_time: Optional[dt.datetime],
    description: Optional[str],
    priority: str,
    reminder_type: str,
    send_email: bool,
    invoice_id: Optional[str],
    invoice_ref: Optional[str],
    ticket_id: Optional[str],
):
    """Add a reminder.

    Example:
        ar-admin reminders create --title "Call about 001234" --date 2024-05-02
    """
    with with_error_handling(console.debug):
        report = ValidationReport()
        fields = {
            "title": title,
            "reminder_date": reminder_date.date(),
            "description": description,
            "priority": priority,
            "reminder_type": reminder_type,
            "send_email_notification": send_email,
            "invoice_id": invoice_id,
            "invoice_reference_number": invoice_ref,
            "ticket_id": ticket_id,
        }
        if reminder_time is not None:
            fields["reminder_time"] = reminder_time.time()

        draft = None
        try:
            draft = ReminderDraft(**fields)
        except ValidationError as e:
            report.add_model_errors(e)
        ensure_valid(report)

        panel = console.open_view("reminders")
        row = _service(console).create(draft, panel.user_id)
        reminder_id = row.get("id") if isinstance(row, dict) else None
        suffix = f" ({reminder_id})" if reminder_id else ""
        click.echo(format_success(f"Reminder created{suffix}"))


@reminders_group.command(name="complete")
@click.argument("reminder_id")
@pass_console
def complete(console: Console, reminder_id: str):
    """Mark a reminder done."""
    with with_error_handling(console.debug):
        panel = console.open_view("reminders")
        _service(console).complete(reminder_id, panel.user_id)
        click.echo(format_success("Reminder completed"))


@reminders_group.command(name="uncomplete")
@click.argument("reminder_id")
@pass_console
def uncomplete(console: Console, reminder_id: str):
    """Reopen a completed reminder."""
    with with_error_handling(console.debug):
        console.open_view("reminders")
        _service(console).uncomplete(reminder_id)
        click.echo(format_success("Reminder reopened"))


@reminders_group.command(name="delete")
@click.argument("reminder_id")
@click.confirmation_option(prompt="Delete this reminder?")
@pass_console
def delete(console: Console, reminder_id: str):
    with with_error_handling(console.debug):
        console.open_view("reminders")
        _service(console).delete(reminder_id)
        click.echo(format_success("Reminder deleted"))


@reminders_group.command(name="send-emails")
@click.option(
    "--to",
    "recipients",
    multiple=True,
    required=True,
    help="Recipient address; repeat for several",
)
@pass_console
def send_emails(console: Console, recipients: Tuple[str, ...]):
    """Send due reminder emails now."""
    with with_error_handling(console.debug):
        report = ValidationReport()
        for address in recipients:
            FormValidators.validate_email(address, "to", report)
        ensure_valid(report)

        console.open_view("reminders")
        result = _service(console).send_emails(recipients)
        click.echo(
            format_success(
                f"Processed {result['total']} reminders, sent {result['sent']} emails"
            )
        )
