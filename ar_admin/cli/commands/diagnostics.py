"""Diagnostics commands: Acumatica credential test and payment counts."""

import datetime as dt
from typing import Optional

import click

from ar_admin.cli.context import Console, ensure_valid, pass_console
from ar_admin.cli.error_handlers import DataValidationError, with_error_handling
from ar_admin.cli.utils.formatters import (
    format_error,
    format_success,
    format_table,
    format_warning,
)
from ar_admin.services.diagnostics import DiagnosticsService, month_range
from ar_admin.validators import FormValidators, ValidationReport


def _service(console: Console) -> DiagnosticsService:
    return DiagnosticsService(console.client, console.functions)


@click.group(name="diagnostics")
def diagnostics_group():
    """Check the Acumatica connection and data completeness."""


@diagnostics_group.command(name="test-credentials")
@click.option("--url", required=True, help="Acumatica instance URL")
@click.option("--username", required=True)
@click.option("--password", prompt=True, hide_input=True)
@click.option("--company", default=None)
@click.option("--branch", default=None)
@pass_console
def test_credentials(
    console: Console,
    url: str,
    username: str,
    password: str,
    company: Optional[str],
    branch: Optional[str],
):
    """Try a login against Acumatica without saving anything."""
    with with_error_handling(console.debug):
        report = ValidationReport()
        FormValidators.validate_required(url, "url", report)
        FormValidators.validate_required(username, "username", report)
        FormValidators.validate_required(password, "password", report)
        ensure_valid(report)

        console.open_view("credential-tester")
        result = _service(console).test_credentials(
            url.strip(), username.strip(), password, company, branch
        )
        if result.success:
            click.echo(format_success(result.message))
        else:
            click.echo(format_error(result.message))
            if console.debug and result.details:
                click.echo(str(result.details))
            raise click.exceptions.Exit(1)


@diagnostics_group.command(name="payment-count")
@click.option("--month", default=None, help="Whole month, YYYY-MM")
@click.option("--day", default=None, help="Single day, YYYY-MM-DD")
@click.option("--start", type=click.DateTime(["%Y-%m-%d"]), default=None)
@click.option("--end", type=click.DateTime(["%Y-%m-%d"]), default=None)
@pass_console
def payment_count(
    console: Console,
    month: Optional[str],
    day: Optional[str],
    start: Optional[dt.datetime],
    end: Optional[dt.datetime],
):
    """Compare Acumatica's payment count with the local database.

    Pick exactly one of --month, --day or --start/--end.

    Example:
        ar-admin diagnostics payment-count --month 2024-03
    """
    with with_error_handling(console.debug):
        chosen = sum(1 for v in (month, day, start or end) if v)
        if chosen != 1:
            raise DataValidationError(
                "Choose one of --month, --day or --start/--end",
                recovery_hint="Example: --month 2024-03",
            )

        report = ValidationReport()
        try:
            if month:
                month_range(month)
            elif day:
                dt.date.fromisoformat(day)
        except ValueError as e:
            report.add_error("month" if month else "day", str(e), month or day)
        if start or end:
            FormValidators.validate_date_order(
                start.date() if start else None,
                end.date() if end else None,
                report,
                "start",
                "end",
            )
        ensure_valid(report)

        console.open_view("payment-count-comparison")
        service = _service(console)
        if month:
            comparison = service.compare_month(month)
        elif day:
            comparison = service.compare_day(day)
        else:
            comparison = service.compare_payment_counts(start.date(), end.date())

        click.echo(
            format_table(
                ["From", "To", "Acumatica", "Database", "Difference"],
                [
                    [
                        comparison.start.isoformat(),
                        comparison.end.isoformat(),
                        comparison.acumatica_count,
                        comparison.db_count,
                        comparison.difference,
                    ]
                ],
            )
        )
        if comparison.in_sync:
            click.echo(format_success("Counts match"))
        elif comparison.difference > 0:
            missing = comparison.difference
            click.echo(format_warning(f"{missing} payments missing locally"))
        else:
            extra = -comparison.difference
            click.echo(format_warning(f"{extra} extra payments locally"))
