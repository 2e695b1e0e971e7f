"""Sync monitoring and administration commands."""

import datetime as dt
from typing import Optional

import click

from ar_admin.cli.context import Console, ensure_valid, pass_console, require_action
from ar_admin.cli.error_handlers import DataValidationError, with_error_handling
from ar_admin.cli.utils.formatters import (
    format_duration,
    format_info,
    format_status,
    format_success,
    format_table,
    format_timestamp,
)
from ar_admin.models.sync import SyncConfig, SyncCredentials
from ar_admin.services.sync import RANGE_TYPES, SYNC_ENTITIES, SyncService
from ar_admin.validators import FormValidators, ValidationReport

STATUS_HEADERS = [
    "Entity",
    "Status",
    "Last Success",
    "Synced",
    "Enabled",
    "Every",
    "Last Error",
]
LOG_HEADERS = [
    "Started",
    "Entity",
    "Status",
    "Synced",
    "Created",
    "Updated",
    "Duration",
]
SCHEDULER_HEADERS = [
    "Executed",
    "Checked",
    "Queued",
    "Sent",
    "Failed",
    "Test",
    "Errors",
]
CONFIG_HEADERS = ["Entity", "Enabled", "Interval (min)", "Lookback (min)"]


def _service(console: Console) -> SyncService:
    return SyncService(console.client, console.functions)


@click.group(name="sync")
def sync_group():
    """Sync status, history and manual syncs."""


@sync_group.command(name="status")
@pass_console
def status(console: Console):
    """Show the health of each synced entity."""
    with with_error_handling(console.debug):
        console.open_view("sync-status")
        statuses = _service(console).statuses()
        rows = [
            [
                s.entity_type,
                format_status(s.status),
                format_timestamp(s.last_successful_sync),
                s.records_synced,
                "yes" if s.sync_enabled else "no",
                f"{s.sync_interval_minutes}m",
                s.last_error or "",
            ]
            for s in statuses
        ]
        click.echo(format_table(STATUS_HEADERS, rows))


@sync_group.command(name="logs")
@click.option("--page", type=int, default=1, show_default=True)
@click.option("--per-page", type=int, default=50, show_default=True)
@pass_console
def logs(console: Console, page: int, per_page: int):
    """Page through sync runs, newest first."""
    with with_error_handling(console.debug):
        console.open_view("sync-status")
        result = _service(console).logs(page=page, per_page=per_page)
        rows = [
            [
                format_timestamp(log.sync_started_at or log.created_at),
                log.entity_type,
                format_status(log.status),
                log.records_synced,
                log.records_created,
                log.records_updated,
                format_duration(
                    dt.timedelta(milliseconds=log.duration_ms)
                    if log.duration_ms is not None
                    else None
                ),
            ]
            for log in result.rows
        ]
        click.echo(format_table(LOG_HEADERS, rows))
        click.echo(
            format_info(f"Page {result.page} of {result.pages} ({result.total} runs)")
        )


@sync_group.command(name="change-logs")
@click.option("--limit", type=int, default=100, show_default=True)
@click.option("--type", "sync_type", type=click.Choice(SYNC_ENTITIES), default=None)
@pass_console
def change_logs(console: Console, limit: int, sync_type: Optional[str]):
    """Show individual record changes made by syncs."""
    with with_error_handling(console.debug):
        console.open_view("sync-logs")
        entries = _service(console).change_logs(limit=limit, sync_type=sync_type)
        rows = [
            [
                format_timestamp(e.created_at),
                e.sync_type,
                e.action_type,
                e.entity_reference or "",
                e.entity_name or "",
                e.change_summary or "",
            ]
            for e in entries
        ]
        click.echo(
            format_table(
                ["When", "Type", "Action", "Reference", "Name", "Summary"], rows
            )
        )


@sync_group.command(name="scheduler-logs")
@click.option("--limit", type=int, default=50, show_default=True)
@pass_console
def scheduler_logs(console: Console, limit: int):
    """Show email scheduler executions."""
    with with_error_handling(console.debug):
        console.open_view("schedule")
        entries = _service(console).scheduler_logs(limit=limit)
        rows = [
            [
                format_timestamp(e.executed_at),
                e.total_assignments_checked,
                e.emails_queued,
                e.emails_sent,
                e.emails_failed,
                "yes" if e.test_mode else "no",
                e.error_summary or "",
            ]
            for e in entries
        ]
        click.echo(format_table(SCHEDULER_HEADERS, rows))


@sync_group.command(name="run")
@click.option(
    "--entity",
    type=click.Choice(SYNC_ENTITIES),
    default=None,
    help="Sync one entity instead of all",
)
@pass_console
def run(console: Console, entity: Optional[str]):
    """Trigger an incremental sync now."""
    with with_error_handling(console.debug):
        console.open_view("sync-status")
        service = _service(console)
        if entity:
            click.echo(format_info(f"Syncing {entity}..."))
            result = service.run_entity_sync(entity)
        else:
            click.echo(format_info("Running master sync..."))
            result = service.run_master_sync()
        click.echo(
            format_success(
                f"Sync completed! Created: {result.created}, "
                f"Updated: {result.updated}, Total: {result.fetched}"
            )
        )


@sync_group.command(name="links")
@pass_console
def links(console: Console):
    """Extract payment to invoice links from payment history."""
    with with_error_handling(console.debug):
        console.open_view("sync-status")
        click.echo(format_info("Extracting payment-to-invoice links..."))
        result = _service(console).sync_payment_links()
        click.echo(
            format_success(
                f"{result['links_created']} invoice applications extracted from "
                f"{result['payments_processed']} payments"
            )
        )


@sync_group.command(name="date-range")
@click.option("--entity", type=click.Choice(SYNC_ENTITIES), required=True)
@click.option(
    "--range",
    "range_type",
    type=click.Choice(RANGE_TYPES),
    default="last_week",
    show_default=True,
)
@click.option("--start", type=click.DateTime(["%Y-%m-%d"]), default=None)
@click.option("--end", type=click.DateTime(["%Y-%m-%d"]), default=None)
@pass_console
def date_range(
    console: Console,
    entity: str,
    range_type: str,
    start: Optional[dt.datetime],
    end: Optional[dt.datetime],
):
    """Re-sync one entity over a date range.

    Example:
        ar-admin sync date-range --entity payment --range custom \\
            --start 2024-01-01 --end 2024-01-31
    """
    with with_error_handling(console.debug):
        start_day = start.date() if start else None
        end_day = end.date() if end else None
        if range_type == "custom":
            report = ValidationReport()
            FormValidators.validate_date_order(start_day, end_day, report)
            ensure_valid(report)

        console.open_view("sync-config")
        click.echo(format_info(f"Syncing {entity} records for {range_type}..."))
        result = _service(console).run_date_range_sync(
            entity, range_type, start=start_day, end=end_day
        )
        click.echo(
            format_success(
                f"Date range sync completed! Created: {result.get('created', 0)}, "
                f"Updated: {result.get('updated', 0)}"
            )
        )


@sync_group.group(name="config", invoke_without_command=True)
@click.pass_context
def config_group(ctx: click.Context):
    """Show or change sync scheduling."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(show_config)


@config_group.command(name="show")
@pass_console
def show_config(console: Console):
    """Show scheduling per entity."""
    with with_error_handling(console.debug):
        console.open_view("sync-config")
        rows = [
            [
                c.entity_type,
                "yes" if c.sync_enabled else "no",
                c.sync_interval_minutes,
                c.lookback_minutes,
            ]
            for c in _service(console).configs()
        ]
        click.echo(format_table(CONFIG_HEADERS, rows))


@config_group.command(name="set")
@click.argument("entity", type=click.Choice(SYNC_ENTITIES))
@click.option("--enabled/--disabled", default=None)
@click.option("--interval", type=int, default=None, help="Minutes, 1-1440")
@click.option("--lookback", type=int, default=None, help="Minutes, 1-10080")
@pass_console
def set_config(
    console: Console,
    entity: str,
    enabled: Optional[bool],
    interval: Optional[int],
    lookback: Optional[int],
):
    """Change scheduling of one entity."""
    with with_error_handling(console.debug):
        report = ValidationReport()
        if interval is not None:
            FormValidators.validate_int_range(interval, "interval", report, 1, 1440)
        if lookback is not None:
            FormValidators.validate_int_range(lookback, "lookback", report, 1, 10080)
        ensure_valid(report)

        panel = console.open_view("sync-config")
        require_action(panel, "edit")

        service = _service(console)
        current = {c.entity_type: c for c in service.configs()}
        if entity not in current:
            raise DataValidationError(f"No sync configuration for {entity}")

        base = current[entity]
        updated = SyncConfig(
            id=base.id,
            entity_type=base.entity_type,
            sync_enabled=base.sync_enabled if enabled is None else enabled,
            sync_interval_minutes=(
                base.sync_interval_minutes if interval is None else interval
            ),
            lookback_minutes=base.lookback_minutes if lookback is None else lookback,
        )
        service.save_configs([updated])
        click.echo(format_success("Configuration saved successfully!"))


@sync_group.group(name="credentials", invoke_without_command=True)
@click.pass_context
def credentials_group(ctx: click.Context):
    """Show or replace the Acumatica credentials used by scheduled syncs."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(show_credentials)


@credentials_group.command(name="show")
@pass_console
def show_credentials(console: Console):
    with with_error_handling(console.debug):
        console.open_view("sync-config")
        creds = _service(console).active_credentials()
        if creds is None:
            click.echo(
                format_info("No credentials configured. Automatic sync will not run.")
            )
            return
        click.echo(
            format_table(
                ["URL", "Username", "Company", "Branch"],
                [[creds.acumatica_url, creds.username, creds.company, creds.branch]],
            )
        )


@credentials_group.command(name="set")
@click.option("--url", required=True)
@click.option("--username", required=True)
@click.option("--password", prompt=True, hide_input=True)
@click.option("--company", default="")
@click.option("--branch", default="")
@pass_console
def set_credentials(
    console: Console, url: str, username: str, password: str, company: str, branch: str
):
    """Store new credentials and deactivate the old ones."""
    with with_error_handling(console.debug):
        report = ValidationReport()
        FormValidators.validate_required(url, "url", report)
        FormValidators.validate_required(username, "username", report)
        FormValidators.validate_required(password, "password", report)
        ensure_valid(report)

        panel = console.open_view("sync-config")
        require_action(panel, "edit")

        _service(console).save_credentials(
            SyncCredentials(
                acumatica_url=url.strip(),
                username=username.strip(),
                password=password,
                company=company.strip(),
                branch=branch.strip(),
                supabase_url=console.config.supabase_url,
                supabase_anon_key=console.config.supabase_anon_key,
            )
        )
        click.echo(
            format_success(
                "Credentials saved successfully! Automatic sync will now work."
            )
        )
