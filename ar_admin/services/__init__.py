"""
Backend services for the admin console.

This package provides:
- A PostgREST/GoTrue client with retries and a circuit breaker
- Edge function invocation
- Session persistence, authentication and impersonation
- Batched bulk fetch loops and status polling
- Panel services for sync, cron, collectors, reminders, users and diagnostics
"""

from .edge_functions import EdgeFunctionClient
from .errors import (
    AuthenticationError,
    BackendError,
    EdgeFunctionError,
    PermissionDeniedError,
    SupabaseError,
)
from .retry_handler import CircuitBreakerError, RetryExhaustedException, RetryHandler
from .supabase_client import QueryResult, SupabaseClient

__all__ = [
    "AuthenticationError",
    "BackendError",
    "CircuitBreakerError",
    "EdgeFunctionClient",
    "EdgeFunctionError",
    "PermissionDeniedError",
    "QueryResult",
    "RetryExhaustedException",
    "RetryHandler",
    "SupabaseClient",
    "SupabaseError",
]
