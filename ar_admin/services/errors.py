"""Exceptions raised by the backend service layer."""

from typing import Any, Dict, Optional


class BackendError(Exception):
    """Base class for failures reported by the backend."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Seconds from a Retry-After header; HTTP-date values are ignored."""
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


class SupabaseError(BackendError):
    """A table query, RPC or auth call failed.

    Attributes:
        code: Backend error code (e.g. ``PGRST116``) when one was returned
        details: Extra detail text from the backend
        retry_after: Seconds the backend asked to wait (429 and 503)
    """

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        code: Optional[str] = None,
        details: Optional[str] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message, status_code)
        self.code = code
        self.details = details
        self.retry_after = retry_after

    @classmethod
    def from_response(cls, response) -> "SupabaseError":
        """Build an error from a failed ``requests.Response``.

        Understands both the query interface body (``message``, ``code``,
        ``details``) and the auth interface body (``error_description``,
        ``msg``, ``error``).
        """
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict):
            message = (
                body.get("message")
                or body.get("error_description")
                or body.get("msg")
                or body.get("error")
                or response.reason
            )
            code = body.get("code") or body.get("error_code")
            details = body.get("details") or body.get("hint")
        else:
            message = response.text or response.reason or "Request failed"
            code = None
            details = None

        return cls(
            str(message),
            status_code=response.status_code,
            code=str(code) if code is not None else None,
            details=details,
            retry_after=_parse_retry_after(response.headers.get("Retry-After")),
        )


class AuthenticationError(SupabaseError):
    """No usable session, or the credentials were rejected."""


class EdgeFunctionError(BackendError):
    """An edge function answered with an error.

    Attributes:
        function_name: Name of the invoked function
        payload: Parsed response body when there was one
    """

    def __init__(
        self,
        function_name: str,
        message: str,
        status_code: int = 0,
        payload: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, status_code)
        self.function_name = function_name
        self.payload = payload or {}

    def __str__(self) -> str:
        return f"{self.function_name}: {self.message}"


class PermissionDeniedError(Exception):
    """The signed-in user lacks the permission a view or action requires.

    Attributes:
        view_key: View the user tried to open
        permission_key: Permission that was checked
        action: view, create, edit or delete
    """

    def __init__(self, view_key: str, permission_key: str, action: str = "view"):
        self.view_key = view_key
        self.permission_key = permission_key
        self.action = action
        super().__init__(
            f"Permission denied: '{view_key}' requires {action} access "
            f"to '{permission_key}'"
        )
