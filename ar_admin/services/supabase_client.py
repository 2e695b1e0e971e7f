"""
Backend client for table queries, RPCs and authentication.

Speaks the REST query interface (``/rest/v1``) and the auth interface
(``/auth/v1``) of the hosted backend over a shared ``requests.Session``.
"""

import copy
import datetime as dt
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import requests

from ar_admin.models.users import AuthSession
from ar_admin.services.errors import AuthenticationError, BackendError, SupabaseError
from ar_admin.services.retry_handler import RetryExhaustedException, RetryHandler
from ar_admin.utils.logging_utils import sanitize_sensitive_data

logger = logging.getLogger(__name__)

_CONTENT_RANGE = re.compile(r"^(?:\d+-\d+|\*)/(\d+|\*)$")
_NEEDS_QUOTING = set(',()" ')

SINGLE_OBJECT = "application/vnd.pgrst.object+json"


@dataclass
class QueryResult:
    """Outcome of one table query.

    Attributes:
        data: Parsed body (list of rows, a single row, or None)
        count: Exact row count when requested
        status_code: HTTP status of the response
    """

    data: Any
    count: Optional[int] = None
    status_code: int = 200


def parse_content_range(header: Optional[str]) -> Optional[int]:
    """Extract the total from a ``Content-Range`` header like ``0-9/123``."""
    if not header:
        return None
    match = _CONTENT_RANGE.match(header.strip())
    if not match or match.group(1) == "*":
        return None
    return int(match.group(1))


def format_filter_value(value: Any) -> str:
    """Render a Python value the way the query interface expects it."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()
    return str(value)


def _quote_list_item(value: Any) -> str:
    text = format_filter_value(value)
    if any(ch in _NEEDS_QUOTING for ch in text):
        return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'
    return text


class QueryBuilder:
    """
    Fluent builder for one table request.

    Example:
        >>> result = (
        ...     client.table("sync_logs")
        ...     .select("*", count="exact")
        ...     .order("created_at", ascending=False)
        ...     .range(0, 49)
        ...     .execute()
        ... )
    """

    def __init__(self, client: "SupabaseClient", table: str):
        self._client = client
        self._table = table
        self._method = "GET"
        self._filters: List[Tuple[str, str]] = []
        self._orders: List[str] = []
        self._select = "*"
        self._count: Optional[str] = None
        self._returning = False
        self._body: Any = None
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None
        self._single = False
        self._maybe_single = False

    def select(
        self, columns: str = "*", count: Optional[str] = None, head: bool = False
    ) -> "QueryBuilder":
        """
        Choose columns and whether to request a row count.

        Args:
            columns: Column list, may include embedded relations
            count: ``exact`` to receive the total in the result
            head: Fetch only the count, no rows
        """
        self._select = " ".join(columns.split())
        self._count = count
        if self._method == "GET":
            self._method = "HEAD" if head else "GET"
        else:
            self._returning = True
        return self

    def _filter(self, column: str, operator: str, value: Any) -> "QueryBuilder":
        self._filters.append((column, f"{operator}.{format_filter_value(value)}"))
        return self

    def eq(self, column: str, value: Any) -> "QueryBuilder":
        return self._filter(column, "eq", value)

    def neq(self, column: str, value: Any) -> "QueryBuilder":
        return self._filter(column, "neq", value)

    def gt(self, column: str, value: Any) -> "QueryBuilder":
        return self._filter(column, "gt", value)

    def gte(self, column: str, value: Any) -> "QueryBuilder":
        return self._filter(column, "gte", value)

    def lt(self, column: str, value: Any) -> "QueryBuilder":
        return self._filter(column, "lt", value)

    def lte(self, column: str, value: Any) -> "QueryBuilder":
        return self._filter(column, "lte", value)

    def like(self, column: str, pattern: str) -> "QueryBuilder":
        return self._filter(column, "like", pattern)

    def ilike(self, column: str, pattern: str) -> "QueryBuilder":
        return self._filter(column, "ilike", pattern)

    def in_(self, column: str, values: Iterable[Any]) -> "QueryBuilder":
        items = ",".join(_quote_list_item(v) for v in values)
        self._filters.append((column, f"in.({items})"))
        return self

    def is_(self, column: str, value: Optional[bool]) -> "QueryBuilder":
        return self._filter(column, "is", value)

    def order(self, column: str, ascending: bool = True) -> "QueryBuilder":
        self._orders.append(f"{column}.{'asc' if ascending else 'desc'}")
        return self

    def range(self, start: int, end: int) -> "QueryBuilder":
        """Restrict to rows ``start`` through ``end`` inclusive."""
        if start < 0 or end < start:
            raise ValueError(f"Invalid range {start}-{end}")
        self._offset = start
        self._limit = end - start + 1
        return self

    def limit(self, count: int) -> "QueryBuilder":
        self._limit = count
        return self

    def single(self) -> "QueryBuilder":
        """Expect exactly one row; anything else is an error."""
        self._single = True
        return self

    def maybe_single(self) -> "QueryBuilder":
        """Expect zero or one row; zero rows yields ``data=None``."""
        self._maybe_single = True
        return self

    def insert(self, rows: Any, returning: bool = True) -> "QueryBuilder":
        self._method = "POST"
        self._body = rows
        self._returning = returning
        return self

    def update(self, values: Dict[str, Any], returning: bool = False) -> "QueryBuilder":
        self._method = "PATCH"
        self._body = values
        self._returning = returning
        return self

    def delete(self) -> "QueryBuilder":
        self._method = "DELETE"
        return self

    def _build_params(self) -> List[Tuple[str, str]]:
        params: List[Tuple[str, str]] = []
        if self._method in ("GET", "HEAD") or self._returning:
            params.append(("select", self._select))
        params.extend(self._filters)
        if self._orders:
            params.append(("order", ",".join(self._orders)))
        if self._limit is not None:
            params.append(("limit", str(self._limit)))
        if self._offset is not None:
            params.append(("offset", str(self._offset)))
        return params

    def _build_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        prefer = []
        if self._count:
            prefer.append(f"count={self._count}")
        if self._method in ("POST", "PATCH", "DELETE"):
            prefer.append(
                "return=representation" if self._returning else "return=minimal"
            )
        if prefer:
            headers["Prefer"] = ",".join(prefer)
        if self._single:
            headers["Accept"] = SINGLE_OBJECT
        return headers

    def execute(self) -> QueryResult:
        """
        Send the request.

        Returns:
            QueryResult with rows, optional count and status

        Raises:
            SupabaseError: If the backend rejects the request, or the row
                count does not match single()/maybe_single()
        """
        response = self._client.request(
            self._method,
            self._client.rest_url(self._table),
            params=self._build_params(),
            json=self._body,
            headers=self._build_headers(),
        )

        count = parse_content_range(response.headers.get("Content-Range"))
        data = None if self._method == "HEAD" else _parse_body(response)

        if self._maybe_single:
            rows = data if isinstance(data, list) else ([data] if data else [])
            if len(rows) > 1:
                raise SupabaseError(
                    f"Expected at most one row from {self._table}, got {len(rows)}",
                    status_code=406,
                    code="PGRST116",
                )
            data = rows[0] if rows else None

        return QueryResult(data=data, count=count, status_code=response.status_code)


def _parse_body(response: requests.Response) -> Any:
    if response.status_code == 204 or not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class SupabaseClient:
    """
    Client for the hosted backend's query, RPC and auth interfaces.

    Features:
    - Bearer token is the user access token when set, else the anon key
    - Transient failures retried with exponential backoff
    - Per-request timeout
    - Request payloads sanitized before logging
    """

    def __init__(
        self,
        url: str,
        anon_key: str,
        access_token: Optional[str] = None,
        service_role_key: Optional[str] = None,
        timeout: float = 10.0,
        retry_handler: Optional[RetryHandler] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client.

        Args:
            url: Backend project URL
            anon_key: Public API key
            access_token: Signed-in user's access token
            service_role_key: Privileged key for admin auth operations
            timeout: Seconds per request
            retry_handler: Custom retry handler instance
            session: HTTP session, replaced in tests
        """
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.access_token = access_token
        self.service_role_key = service_role_key
        self.timeout = timeout
        self.retry_handler = retry_handler or RetryHandler()
        self.session = session or requests.Session()

    @classmethod
    def from_config(
        cls, config, access_token: Optional[str] = None
    ) -> "SupabaseClient":
        """Build a client from AdminConsoleConfig."""
        return cls(
            url=config.supabase_url,
            anon_key=config.supabase_anon_key,
            access_token=access_token,
            service_role_key=config.supabase_service_role_key,
            timeout=config.request_timeout,
            retry_handler=RetryHandler(
                max_retries=config.max_retries, base_delay=config.retry_delay
            ),
        )

    def using(self, retry_handler: RetryHandler) -> "SupabaseClient":
        """A copy sharing the session and token, retrying with ``retry_handler``."""
        clone = copy.copy(self)
        clone.retry_handler = retry_handler
        return clone

    def rest_url(self, path: str) -> str:
        return f"{self.url}/rest/v1/{path.lstrip('/')}"

    def auth_url(self, path: str) -> str:
        return f"{self.url}/auth/v1/{path.lstrip('/')}"

    def set_access_token(self, access_token: Optional[str]) -> None:
        self.access_token = access_token

    def auth_headers(self, bearer: Optional[str] = None) -> Dict[str, str]:
        """Headers identifying the project and the caller."""
        return {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {bearer or self.access_token or self.anon_key}",
        }

    def request(
        self,
        method: str,
        url: str,
        params: Optional[Sequence[Tuple[str, str]]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
        bearer: Optional[str] = None,
        error_class=SupabaseError,
    ) -> requests.Response:
        """
        Send one request with retry and return the successful response.

        Raises:
            SupabaseError: (or ``error_class``) for non-2xx responses and
                network failures
            CircuitBreakerError: If too many calls failed recently
        """
        merged = {"Content-Type": "application/json", **self.auth_headers(bearer)}
        merged.update(headers or {})

        logger.debug(
            f"{method} {url}",
            extra={"params": params, "body": sanitize_sensitive_data(json)},
        )

        def _send() -> requests.Response:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers=merged,
                timeout=self.timeout,
            )
            if not response.ok:
                raise error_class.from_response(response)
            return response

        try:
            return self.retry_handler.execute_with_retry(_send)
        except RetryExhaustedException as e:
            last = e.last_exception
            if isinstance(last, BackendError):
                raise last from e
            raise error_class(f"Network error: {last}") from e
        except requests.exceptions.RequestException as e:
            raise error_class(f"Network error: {e}") from e

    # Tables and RPC

    def table(self, name: str) -> QueryBuilder:
        """Start a query against a table or view."""
        return QueryBuilder(self, name)

    def rpc(self, function: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Call a database function.

        Args:
            function: Function name
            params: Named arguments

        Returns:
            Parsed function result
        """
        response = self.request(
            "POST", self.rest_url(f"rpc/{function}"), json=params or {}
        )
        return _parse_body(response)

    def select_in_batches(
        self,
        table: str,
        columns: str,
        column: str,
        values: Sequence[Any],
        chunk_size: int = 100,
    ) -> List[Dict[str, Any]]:
        """
        Select rows whose ``column`` is in ``values`` using chunked IN filters.

        Long IN lists exceed URL limits, so the values are split into
        chunks of ``chunk_size`` and the results concatenated in order.
        """
        if chunk_size < 1:
            raise ValueError("chunk_size must be positive")

        rows: List[Dict[str, Any]] = []
        values = list(values)
        for offset in range(0, len(values), chunk_size):
            chunk = values[offset : offset + chunk_size]
            result = self.table(table).select(columns).in_(column, chunk).execute()
            rows.extend(result.data or [])

        logger.debug(
            f"Selected {len(rows)} rows from {table} in "
            f"{(len(values) + chunk_size - 1) // chunk_size} chunks"
        )
        return rows

    def fetch_all(
        self,
        builder_factory: Callable[[], QueryBuilder],
        page_size: int = 1000,
        start: int = 0,
        end: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Read consecutive pages until a short page is returned.

        Args:
            builder_factory: Returns a fresh, filtered QueryBuilder per page
            page_size: Rows per page
            start: First row offset
            end: Exclusive upper bound on the row offset, or None

        Returns:
            All rows read
        """
        if page_size < 1:
            raise ValueError("page_size must be positive")

        rows: List[Dict[str, Any]] = []
        offset = start
        while end is None or offset < end:
            upper = offset + page_size - 1
            if end is not None:
                upper = min(upper, end - 1)

            page = builder_factory().range(offset, upper).execute().data or []
            rows.extend(page)

            if len(page) < upper - offset + 1:
                break
            offset = upper + 1

        return rows

    # Authentication

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        """
        Exchange email and password for a session.

        Raises:
            AuthenticationError: If the credentials are rejected
        """
        response = self.request(
            "POST",
            self.auth_url("token"),
            params=[("grant_type", "password")],
            json={"email": email, "password": password},
            bearer=self.anon_key,
            error_class=AuthenticationError,
        )
        session = AuthSession(**response.json())
        self.access_token = session.access_token
        return session

    def refresh_session(self, refresh_token: str) -> AuthSession:
        """Trade a refresh token for a new session."""
        response = self.request(
            "POST",
            self.auth_url("token"),
            params=[("grant_type", "refresh_token")],
            json={"refresh_token": refresh_token},
            bearer=self.anon_key,
            error_class=AuthenticationError,
        )
        session = AuthSession(**response.json())
        self.access_token = session.access_token
        return session

    def sign_up(
        self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Register a new user.

        Returns:
            The created user object (the body's ``user`` when present)
        """
        response = self.request(
            "POST",
            self.auth_url("signup"),
            json={"email": email, "password": password, "data": metadata or {}},
            bearer=self.anon_key,
            error_class=AuthenticationError,
        )
        body = response.json()
        return body.get("user") or body

    def get_user(self) -> Dict[str, Any]:
        """Return the user owning the current access token."""
        if not self.access_token:
            raise AuthenticationError("Not authenticated", status_code=401)
        response = self.request(
            "GET", self.auth_url("user"), error_class=AuthenticationError
        )
        return response.json()

    def sign_out(self) -> None:
        """Revoke the current access token. No-op without one."""
        if not self.access_token:
            return
        self.request("POST", self.auth_url("logout"), error_class=AuthenticationError)
        self.access_token = None

    def admin_update_user(
        self, user_id: str, attributes: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Update a user through the admin API.

        Raises:
            AuthenticationError: If no service role key is configured
        """
        if not self.service_role_key:
            raise AuthenticationError(
                "SUPABASE_SERVICE_ROLE_KEY is required for admin user operations"
            )
        response = self.request(
            "PUT",
            self.auth_url(f"admin/users/{user_id}"),
            json=attributes,
            bearer=self.service_role_key,
            error_class=AuthenticationError,
        )
        return response.json()
