"""Backfill commands: payment data loops, application fetches and the
server-side backfill monitor."""

import signal
from typing import Optional

import click

from ar_admin.cli.commands.fetch import (
    run_batch_loop,
    validate_window_options,
    window_options,
)
from ar_admin.cli.context import Console, pass_console, require_action
from ar_admin.cli.error_handlers import with_error_handling
from ar_admin.cli.utils.formatters import (
    format_duration,
    format_error,
    format_info,
    format_status,
    format_success,
    format_table,
    format_timestamp,
    format_warning,
)
from ar_admin.models.sync import BackfillProgress
from ar_admin.services.backfill import BackfillService
from ar_admin.services.bulk_fetch import BulkFetchService
from ar_admin.services.poller import StatusPoller


@click.group(name="backfill")
def backfill_group():
    """Backfill payment applications and attachments."""


@backfill_group.command(name="payment-data")
@window_options
@pass_console
def payment_data(
    console: Console,
    batch_size: Optional[int],
    start: int,
    end: Optional[int],
    stop_on_error: bool,
):
    """Fetch applications and attachments for every payment, window by window.

    Example:
        ar-admin backfill payment-data --batch-size 50 --start 2000
    """
    with with_error_handling(console.debug):
        size = batch_size or console.config.batch_size
        validate_window_options(size, start, end)
        console.open_view("payment-data-backfill")

        service = BulkFetchService(console.functions, console.client)
        click.echo(format_info(f"Backfilling payment data from {start}..."))
        run_batch_loop(
            console,
            service.payment_data_window(),
            size,
            start,
            end,
            stop_on_error,
            "Payments",
        )


@backfill_group.command(name="applications")
@click.option(
    "--synced-today", is_flag=True, help="Only payments synced since midnight UTC"
)
@pass_console
def applications(console: Console, synced_today: bool):
    """Fetch application history for payments that have none."""
    with with_error_handling(console.debug):
        console.open_view("bulk-application-fetcher")
        service = BulkFetchService(console.functions, console.client)

        click.echo(format_info("Fetching payment applications..."))
        result = service.backfill_applications(synced_today=synced_today)
        click.echo(
            format_success(
                f"Processed {result.get('processed', 0)} payments, found "
                f"{result.get('applicationsFound', 0)} applications"
            )
        )
        if result.get("remaining"):
            click.echo(
                format_info(f"{result['remaining']} payments still without data")
            )
        for message in result.get("errors") or []:
            click.echo(format_warning(str(message)))


@backfill_group.command(name="stats")
@pass_console
def stats(console: Console):
    """Show how many payments still lack application data."""
    with with_error_handling(console.debug):
        console.open_view("bulk-application-fetcher")
        result = BulkFetchService(
            console.functions, console.client, page_size=console.config.page_size
        ).application_stats()
        click.echo(
            format_table(
                ["Payments", "Without applications", "Synced today"],
                [[result.total, result.without_applications, result.synced_today]],
            )
        )


def render_progress(progress: Optional[BackfillProgress]) -> None:
    """Print one snapshot of the backfill tracker."""
    if progress is None:
        click.echo(format_warning("Backfill progress has not been initialized"))
        return

    click.echo(
        format_table(
            ["State", "Progress", "Processed", "Applications", "Files", "Errors"],
            [
                [
                    format_status(progress.state),
                    f"{progress.percent_complete}%",
                    f"{progress.items_processed}/{progress.total_items}",
                    progress.applications_found,
                    progress.attachments_found,
                    progress.errors_count,
                ]
            ],
        )
    )
    click.echo(
        format_info(
            f"Started {format_timestamp(progress.started_at)}, "
            f"last batch {format_timestamp(progress.last_batch_at)}, "
            f"elapsed {format_duration(progress.elapsed())}"
        )
    )
    if progress.state == "running":
        eta = progress.estimated_remaining()
        if eta is not None:
            click.echo(format_info(f"About {format_duration(eta)} remaining"))
    if progress.last_error:
        click.echo(format_error(f"Last error: {progress.last_error}"))


@backfill_group.command(name="status")
@click.option("--watch", is_flag=True, help="Keep polling until the run completes")
@click.option(
    "--interval", type=float, default=None, help="Seconds between polls when watching"
)
@pass_console
def status(console: Console, watch: bool, interval: Optional[float]):
    """Show the server-side payment data backfill."""
    with with_error_handling(console.debug):
        console.open_view("auto-backfill")
        service = BackfillService(console.client, console.functions)

        if not watch:
            render_progress(service.get_progress())
            return

        poller = StatusPoller(
            service.get_progress,
            interval or console.config.poll_interval_seconds,
            on_update=render_progress,
            until=lambda p: p is not None and p.state == "completed",
            on_error=lambda e: click.echo(format_error(f"Poll failed: {e}")),
        )
        previous = signal.signal(signal.SIGINT, lambda signum, frame: poller.stop())
        try:
            outcome = poller.run()
        finally:
            signal.signal(signal.SIGINT, previous)

        if outcome.condition_met:
            click.echo(format_success("Backfill completed"))
        else:
            click.echo(format_info(f"Stopped watching after {outcome.polls} polls"))


@backfill_group.command(name="trigger")
@pass_console
def trigger(console: Console):
    """Start or resume the server-side backfill."""
    with with_error_handling(console.debug):
        panel = console.open_view("auto-backfill")
        require_action(panel, "edit")
        result = BackfillService(console.client, console.functions).trigger()
        message = result.get("message") if isinstance(result, dict) else None
        click.echo(format_success(message or "Backfill triggered"))


@backfill_group.command(name="reset")
@click.confirmation_option(prompt="Reset backfill progress to the beginning?")
@pass_console
def reset(console: Console):
    """Zero the backfill tracker so the next run starts over."""
    with with_error_handling(console.debug):
        panel = console.open_view("auto-backfill")
        require_action(panel, "edit")
        BackfillService(console.client, console.functions).reset()
        click.echo(format_success("Backfill progress reset"))
