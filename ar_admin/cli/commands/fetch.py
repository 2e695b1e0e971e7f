"""Bulk fetch commands: invoices, payments and customers from Acumatica."""

import signal
from contextlib import contextmanager
from typing import Dict, Optional

import click

from ar_admin.cli.context import Console, ensure_valid, pass_console
from ar_admin.cli.error_handlers import ProcessingError, with_error_handling
from ar_admin.cli.utils.formatters import (
    format_error,
    format_info,
    format_success,
    format_table,
    format_warning,
)
from ar_admin.cli.utils.progress import BatchProgressReporter
from ar_admin.services.batch_runner import (
    MAX_BATCH_SIZE,
    BatchAbortedError,
    BatchSummary,
    BatchWindowRunner,
)
from ar_admin.services.bulk_fetch import (
    INVOICE_STATUS_FILTERS,
    PAYMENT_DOC_TYPES,
    BulkFetchService,
    FetchWindow,
)
from ar_admin.validators import FormValidators, ValidationReport

# Open-ended loops give up after this many failed windows in a row
OPEN_ENDED_FAILURE_LIMIT = 5


@contextmanager
def _stop_on_interrupt(runner: BatchWindowRunner):
    """Ctrl-C finishes the current window, then stops the loop."""

    def handler(signum, frame):
        click.echo(format_warning("\nStopping after the current batch..."))
        runner.stop()

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def validate_window_options(batch_size: int, start: int, end: Optional[int]) -> None:
    report = ValidationReport()
    FormValidators.validate_int_range(
        batch_size, "batch_size", report, 1, MAX_BATCH_SIZE
    )
    FormValidators.validate_int_range(start, "start", report, 0)
    if end is not None and end <= start:
        report.add_error("end", "End must be greater than start", end)
    ensure_valid(report)


def run_batch_loop(
    console: Console,
    fetch_window: FetchWindow,
    batch_size: int,
    start: int,
    end: Optional[int],
    stop_on_error: bool,
    label: str,
) -> BatchSummary:
    """Run windows with a progress display and print the summary."""
    runner = BatchWindowRunner(
        fetch_window,
        batch_size=batch_size,
        start=start,
        end=end,
        pause_seconds=console.config.batch_pause_seconds,
        continue_on_error=not stop_on_error,
        max_consecutive_failures=OPEN_ENDED_FAILURE_LIMIT if end is None else None,
    )

    try:
        with BatchProgressReporter(start=start, end=end, label=label) as reporter:
            runner.on_progress = reporter
            with _stop_on_interrupt(runner):
                summary = runner.run()
    except BatchAbortedError as e:
        print_summary(e.summary)
        raise ProcessingError(
            str(e),
            recovery_hint=f"Resume with --start {e.summary.next_skip}",
        ) from e

    print_summary(summary)
    return summary


def print_summary(summary: BatchSummary, labels: Optional[Dict[str, str]] = None):
    labels = labels or {}
    rows = [
        [
            "Batches",
            f"{summary.batches_succeeded} ok / {summary.batches_failed} failed",
        ],
        ["Fetched", summary.total_fetched],
        ["Saved", summary.total_saved],
    ]
    if summary.total_created or summary.total_updated:
        rows.append(["Created", summary.total_created])
        rows.append(["Updated", summary.total_updated])
    for key, value in summary.extra.items():
        rows.append([labels.get(key, key.replace("_", " ").capitalize()), value])
    rows.append(["Next start", summary.next_skip])

    click.echo()
    click.echo(format_table(["", "Total"], rows))

    for skip, count in summary.failed_windows:
        click.echo(format_error(f"Failed window {skip}-{skip + count}"))
    for message in summary.errors[:10]:
        click.echo(format_warning(message))
    if len(summary.errors) > 10:
        click.echo(format_warning(f"... and {len(summary.errors) - 10} more errors"))

    if summary.cancelled:
        click.echo(
            format_warning(f"Cancelled. Resume with --start {summary.next_skip}")
        )
    elif summary.success:
        click.echo(format_success("Fetch complete"))
    else:
        click.echo(format_warning("Fetch finished with failed batches"))


def window_options(func):
    """Options shared by every windowed fetch."""
    options = [
        click.option(
            "--batch-size",
            type=int,
            default=None,
            help="Records per call (default BATCH_SIZE, max 1000)",
        ),
        click.option(
            "--start",
            type=int,
            default=0,
            show_default=True,
            help="First record offset",
        ),
        click.option(
            "--end",
            type=int,
            default=None,
            help="Stop before this offset (default: until exhausted)",
        ),
        click.option(
            "--stop-on-error", is_flag=True, help="Abort on the first failed batch"
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group(name="fetch")
def fetch_group():
    """Bulk fetch records from Acumatica in windows."""


@fetch_group.command(name="invoices")
@window_options
@click.option(
    "--status-filter",
    type=click.Choice(INVOICE_STATUS_FILTERS),
    default="open-balanced",
    show_default=True,
)
@click.option("--oldest-first", is_flag=True, help="Fetch oldest invoices first")
@pass_console
def fetch_invoices(
    console: Console,
    batch_size: Optional[int],
    start: int,
    end: Optional[int],
    stop_on_error: bool,
    status_filter: str,
    oldest_first: bool,
):
    """Fetch invoices.

    Example:
        ar-admin fetch invoices --status-filter all --start 0 --end 5000
    """
    with with_error_handling(console.debug):
        size = batch_size or console.config.batch_size
        validate_window_options(size, start, end)
        console.open_view("invoice-fetch")

        service = BulkFetchService(console.functions, console.client)
        click.echo(format_info(f"Fetching {status_filter} invoices from {start}..."))
        run_batch_loop(
            console,
            service.invoice_window(status_filter, newest_first=not oldest_first),
            size,
            start,
            end,
            stop_on_error,
            "Invoices",
        )


@fetch_group.command(name="payments")
@window_options
@click.option(
    "--doc-type",
    type=click.Choice(PAYMENT_DOC_TYPES),
    default="Payment",
    show_default=True,
)
@pass_console
def fetch_payments(
    console: Console,
    batch_size: Optional[int],
    start: int,
    end: Optional[int],
    stop_on_error: bool,
    doc_type: str,
):
    """Fetch payments with their application history."""
    with with_error_handling(console.debug):
        size = batch_size or console.config.batch_size
        validate_window_options(size, start, end)
        console.open_view("payment-fetch")

        service = BulkFetchService(console.functions, console.client)
        click.echo(format_info(f"Fetching {doc_type} records from {start}..."))
        run_batch_loop(
            console,
            service.payment_window(doc_type),
            size,
            start,
            end,
            stop_on_error,
            "Payments",
        )


@fetch_group.command(name="customers")
@window_options
@pass_console
def fetch_customers(
    console: Console,
    batch_size: Optional[int],
    start: int,
    end: Optional[int],
    stop_on_error: bool,
):
    """Fetch customers."""
    with with_error_handling(console.debug):
        size = batch_size or console.config.batch_size
        validate_window_options(size, start, end)
        console.open_view("customer-fetch")

        service = BulkFetchService(console.functions, console.client)
        click.echo(format_info(f"Fetching customers from {start}..."))
        run_batch_loop(
            console,
            service.customer_window(),
            size,
            start,
            end,
            stop_on_error,
            "Customers",
        )
