"""
Decides whether a failed backend call is worth repeating.
"""

import socket
from enum import Enum
from typing import Optional

import requests.exceptions

from ar_admin.services.errors import BackendError, EdgeFunctionError

TRANSIENT_STATUS_CODES = frozenset({408, 429})

NETWORK_ERRORS = (
    socket.timeout,
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    requests.exceptions.ChunkedEncodingError,
)


class ErrorType(Enum):
    """Classification of error types."""

    RETRYABLE = "retryable"  # 408, 429, 5xx, dropped connections
    FATAL = "fatal"  # other 4xx, edge functions
    UNKNOWN = "unknown"


def get_status_code(exception: Exception) -> Optional[int]:
    """Extract an HTTP status code from a backend or requests error."""
    if isinstance(exception, BackendError) and exception.status_code:
        return exception.status_code

    if isinstance(exception, requests.exceptions.HTTPError):
        response = exception.response
        if response is not None:
            return response.status_code

    return None


class ErrorClassifier:
    """
    Classifies errors from the query, RPC, auth and function endpoints.

    Edge function failures are always fatal: a function may already have
    written part of a window before failing, so it is never re-invoked
    automatically.
    """

    def classify(self, exception: Exception) -> ErrorType:
        if isinstance(exception, EdgeFunctionError):
            return ErrorType.FATAL

        status_code = get_status_code(exception)
        if status_code is not None:
            if status_code in TRANSIENT_STATUS_CODES or 500 <= status_code < 600:
                return ErrorType.RETRYABLE
            if 400 <= status_code < 500:
                return ErrorType.FATAL

        if isinstance(exception, NETWORK_ERRORS):
            return ErrorType.RETRYABLE

        return ErrorType.UNKNOWN

    def is_retryable(self, exception: Exception) -> bool:
        """Check if an exception should be retried."""
        return self.classify(exception) == ErrorType.RETRYABLE

    def describe(self, exception: Exception) -> str:
        """Short description such as ``server error (HTTP 502)``."""
        status_code = get_status_code(exception)
        if status_code == 429:
            return "rate limited (HTTP 429)"
        if status_code is not None and status_code >= 500:
            return f"server error (HTTP {status_code})"
        if status_code is not None:
            return f"client error (HTTP {status_code})"
        if isinstance(exception, (socket.timeout, requests.exceptions.Timeout)):
            return "network timeout"
        if isinstance(exception, NETWORK_ERRORS):
            return "network connection error"
        return type(exception).__name__
