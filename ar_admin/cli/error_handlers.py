"""Error handling for console commands."""

import sys
import traceback
from typing import Optional

import click
from pydantic import ValidationError

from ar_admin.cli.utils.formatters import format_error, format_warning
from ar_admin.services.errors import (
    AuthenticationError,
    BackendError,
    EdgeFunctionError,
    PermissionDeniedError,
)
from ar_admin.services.error_classifier import ErrorClassifier
from ar_admin.services.retry_handler import CircuitBreakerError


class CLIError(Exception):
    """Base exception for CLI errors with user-friendly messages."""

    def __init__(self, message: str, recovery_hint: Optional[str] = None):
        """
        Initialize CLI error.

        Args:
            message: Error message to display
            recovery_hint: Optional hint for recovering from the error
        """
        self.message = message
        self.recovery_hint = recovery_hint
        super().__init__(message)


class ConfigurationError(CLIError):
    """Error related to configuration issues."""

    pass


class APIError(CLIError):
    """Error related to backend calls."""

    pass


class DataValidationError(CLIError):
    """Form input failed validation."""

    pass


class ProcessingError(CLIError):
    """A batch loop or long-running job failed."""

    pass


def _echo(message: str, hint: Optional[str] = None) -> None:
    click.echo(format_error(message))
    if hint:
        click.echo(format_warning(f"Hint: {hint}"))


def handle_cli_error(error: Exception, debug: bool = False) -> int:
    """
    Print a user-friendly message for ``error``.

    Args:
        error: The exception that occurred
        debug: Whether to show full stack trace

    Returns:
        Exit code: 1-4 for CLI errors, 5-9 by HTTP status, 10 when a
        permission is missing, 130 on cancellation and 255 for anything
        unexpected
    """
    if isinstance(error, ConfigurationError):
        _echo(f"Configuration Error: {error.message}", error.recovery_hint)
        return 1

    elif isinstance(error, APIError):
        _echo(f"API Error: {error.message}", error.recovery_hint)
        return 2

    elif isinstance(error, DataValidationError):
        _echo(f"Data Validation Error: {error.message}", error.recovery_hint)
        return 3

    elif isinstance(error, ProcessingError):
        _echo(f"Processing Error: {error.message}", error.recovery_hint)
        return 4

    elif isinstance(error, ValidationError):
        _echo(f"Data Validation Error: {error.error_count()} invalid field(s)")
        for detail in error.errors():
            location = ".".join(str(part) for part in detail.get("loc", ()))
            click.echo(f"  - {location}: {detail.get('msg')}")
        return 3

    elif isinstance(error, AuthenticationError):
        _echo(
            f"Authentication Failed: {error.message}",
            "Run 'ar-admin auth login' to sign in again",
        )
        return 5

    elif isinstance(error, PermissionDeniedError):
        _echo(str(error), "Ask an administrator to grant the permission")
        return 10

    elif isinstance(error, BackendError):
        status_code = error.status_code
        label = "Edge Function Error" if isinstance(error, EdgeFunctionError) else None

        if status_code == 401:
            _echo(
                f"Authentication Failed: {error}",
                "Run 'ar-admin auth login' to sign in again",
            )
            return 5

        elif status_code == 403:
            _echo(f"Forbidden: {error}", "Check your role and permissions")
            return 6

        elif status_code == 404:
            _echo(f"Not Found: {error}")
            return 7

        elif status_code == 429:
            _echo(
                "Rate Limit Exceeded",
                "Wait a few minutes before retrying, or use a smaller batch size",
            )
            return 8

        else:
            detail = f"HTTP {status_code}" if status_code else "network"
            classifier = ErrorClassifier()
            if label:
                hint = "Check the function logs before running the window again"
            elif classifier.is_retryable(error):
                hint = f"Transient {classifier.describe(error)}; try again shortly"
            else:
                hint = None
            _echo(f"{label or 'Backend Error'} ({detail}): {error}", hint)
            return 9

    elif isinstance(error, CircuitBreakerError):
        _echo(
            "Backend unavailable: too many consecutive failures",
            "Check the service status and retry in a minute",
        )
        return 9

    # Handle click.Abort (user cancellation)
    elif isinstance(error, click.Abort):
        click.echo(format_warning("\nOperation cancelled by user"))
        return 130  # Standard exit code for SIGINT

    else:
        click.echo(format_error(f"Unexpected Error: {type(error).__name__}"))
        click.echo(str(error))

        if debug:
            click.echo("\nFull stack trace:")
            click.echo(traceback.format_exc())
        else:
            click.echo(format_warning("\nRun with --debug flag for full stack trace"))

        return 255


def with_error_handling(debug: bool = False):
    """
    Context manager that reports an exception and exits with its code.

    Example:
        @click.command()
        @click.pass_obj
        def my_command(console):
            with with_error_handling(console.debug):
                ...
    """

    class ErrorHandler:
        def __init__(self, show_debug: bool):
            self.show_debug = show_debug

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            if exc_val is not None and not isinstance(exc_val, click.exceptions.Exit):
                exit_code = handle_cli_error(exc_val, self.show_debug)
                sys.exit(exit_code)
            return False  # Don't suppress exceptions

    return ErrorHandler(debug)
