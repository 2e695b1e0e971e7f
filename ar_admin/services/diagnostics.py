"""Acumatica credential test and payment count comparison."""

import calendar
import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ar_admin.services.edge_functions import EdgeFunctionClient
from ar_admin.services.errors import EdgeFunctionError
from ar_admin.services.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)


@dataclass
class CredentialTestResult:
    success: bool
    message: str
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CountComparison:
    """Payment counts for one date range.

    Attributes:
        acumatica_count: Payments reported by Acumatica
        db_count: Local payments, credit memos excluded
    """

    start: dt.date
    end: dt.date
    acumatica_count: int
    db_count: int

    @property
    def difference(self) -> int:
        return self.acumatica_count - self.db_count

    @property
    def in_sync(self) -> bool:
        return self.difference == 0


def month_range(month_key: str) -> tuple:
    """First and last day of a ``YYYY-MM`` month."""
    try:
        year, month = (int(part) for part in month_key.split("-"))
        last_day = calendar.monthrange(year, month)[1]
    except (ValueError, calendar.IllegalMonthError) as e:
        raise ValueError(f"Invalid month '{month_key}', expected YYYY-MM") from e
    return dt.date(year, month, 1), dt.date(year, month, last_day)


class DiagnosticsService:
    def __init__(self, client: SupabaseClient, functions: EdgeFunctionClient):
        self.client = client
        self.functions = functions

    def test_credentials(
        self,
        url: str,
        username: str,
        password: str,
        company: Optional[str] = None,
        branch: Optional[str] = None,
    ) -> CredentialTestResult:
        """
        Try an Acumatica login with the given credentials.

        Every failure, including a rejected request, comes back as an
        unsuccessful result rather than an exception.
        """
        if not url or not username or not password:
            return CredentialTestResult(
                success=False, message="URL, username and password are required"
            )

        payload: Dict[str, Any] = {
            "url": url,
            "username": username,
            "password": password,
        }
        if company:
            payload["company"] = company
        if branch:
            payload["branch"] = branch

        try:
            result = self.functions.invoke("test-acumatica-credentials", payload)
        except EdgeFunctionError as e:
            if e.status_code == 0:
                return CredentialTestResult(
                    success=False, message=f"Error: {e.message}"
                )
            if e.status_code >= 300:
                return CredentialTestResult(
                    success=False,
                    message=f"Request failed: {e.message}",
                    details=e.payload,
                )
            return CredentialTestResult(
                success=False,
                message=str(e.payload.get("message") or e.message),
                details=e.payload,
            )

        return CredentialTestResult(
            success=bool(result.get("success", True)),
            message=str(result.get("message") or "Credentials are valid"),
            details=result,
        )

    def compare_payment_counts(self, start: dt.date, end: dt.date) -> CountComparison:
        """Compare Acumatica and local payment counts over whole days."""
        if end < start:
            raise ValueError("End date must be on or after the start date")

        date_from = f"{start.isoformat()}T00:00:00"
        date_to = f"{end.isoformat()}T23:59:59"

        remote = self.functions.invoke(
            "acumatica-get-payment-count", {"dateFrom": date_from, "dateTo": date_to}
        )
        local = (
            self.client.table("acumatica_payments")
            .select("*", count="exact", head=True)
            .gte("application_date", date_from)
            .lte("application_date", date_to)
            .neq("type", "Credit Memo")
            .execute()
        )

        comparison = CountComparison(
            start=start,
            end=end,
            acumatica_count=int(remote.get("count") or 0),
            db_count=local.count or 0,
        )
        logger.info(
            f"Payment counts {start}..{end}: Acumatica {comparison.acumatica_count}, "
            f"database {comparison.db_count}"
        )
        return comparison

    def compare_month(self, month_key: str) -> CountComparison:
        start, end = month_range(month_key)
        return self.compare_payment_counts(start, end)

    def compare_day(self, date_key: str) -> CountComparison:
        try:
            day = dt.date.fromisoformat(date_key)
        except ValueError as e:
            raise ValueError(f"Invalid date '{date_key}', expected YYYY-MM-DD") from e
        return self.compare_payment_counts(day, day)
