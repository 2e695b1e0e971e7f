"""Structured logging utilities with context support."""

import logging
import threading
from typing import Any, Dict, Mapping, Optional

_thread_local = threading.local()

# Substrings of key names whose values must never reach a log line
SENSITIVE_FIELDS = {
    "password",
    "token",
    "apikey",
    "api_key",
    "anon_key",
    "secret",
    "service_role",
    "authorization",
    "credentials",
}

REDACTED = "***REDACTED***"


def get_log_context() -> Dict[str, Any]:
    """Return a copy of the fields currently attached to log records."""
    return dict(getattr(_thread_local, "context", {}))


class LogContext:
    """
    Context manager for adding structured fields to log records.

    Example:
        with LogContext(command="fetch invoices", view="bulk-fetcher"):
            logger.info("Starting window loop")
            # Record carries command and view fields
    """

    def __init__(self, **fields):
        self.fields = fields
        self.previous_context: Optional[Dict[str, Any]] = None

    def __enter__(self):
        if not hasattr(_thread_local, "context"):
            _thread_local.context = {}

        self.previous_context = _thread_local.context.copy()
        _thread_local.context.update(self.fields)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        _thread_local.context = self.previous_context or {}


class _ContextFilter(logging.Filter):
    """Logging filter that copies LogContext fields onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in getattr(_thread_local, "context", {}).items():
            setattr(record, key, value)
        return True


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(sensitive in lowered for sensitive in SENSITIVE_FIELDS)


def sanitize_sensitive_data(data: Any) -> Any:
    """
    Redact secrets from a request payload before it is logged.

    Nested mappings and lists are walked recursively; the input is not
    modified.

    Args:
        data: Payload to sanitize (dict, list or scalar)

    Returns:
        Sanitized copy
    """
    if isinstance(data, Mapping):
        sanitized: Dict[str, Any] = {}
        for key, value in data.items():
            if _is_sensitive(str(key)):
                sanitized[key] = REDACTED if value is not None else None
            else:
                sanitized[key] = sanitize_sensitive_data(value)
        return sanitized

    if isinstance(data, list):
        return [sanitize_sensitive_data(item) for item in data]

    return data
