"""CLI utility functions."""

from ar_admin.cli.utils.formatters import (
    format_currency,
    format_duration,
    format_error,
    format_info,
    format_status,
    format_success,
    format_table,
    format_timestamp,
    format_warning,
)
from ar_admin.cli.utils.progress import BatchProgressReporter, ProgressTracker

__all__ = [
    "format_currency",
    "format_duration",
    "format_error",
    "format_info",
    "format_status",
    "format_success",
    "format_table",
    "format_timestamp",
    "format_warning",
    "BatchProgressReporter",
    "ProgressTracker",
]
