"""
Bulk fetch panels: windowed pulls of invoices, payments and customers from
Acumatica, and the payment data backfills.

Each ``*_window`` method returns a ``fetch_window(skip, count)`` callable for
BatchWindowRunner that invokes one edge function call per window.
"""

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import pandas as pd

from ar_admin.services.batch_runner import WindowResult
from ar_admin.services.edge_functions import EdgeFunctionClient
from ar_admin.services.errors import EdgeFunctionError
from ar_admin.services.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

INVOICE_STATUS_FILTERS = ("open-balanced", "all", "closed-only")
PAYMENT_DOC_TYPES = ("Payment", "Credit Memo")

FetchWindow = Callable[[int, int], WindowResult]


def _int(result: Dict[str, Any], key: str) -> int:
    value = result.get(key)
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _errors(result: Dict[str, Any]) -> list:
    errors = result.get("errors") or []
    return [str(e) for e in errors] if isinstance(errors, list) else [str(errors)]


@dataclass
class ApplicationStats:
    """Payment application coverage."""

    total: int
    without_applications: int
    synced_today: int


class BulkFetchService:
    """Edge function calls behind the bulk fetch and backfill panels."""

    def __init__(
        self,
        functions: EdgeFunctionClient,
        client: Optional[SupabaseClient] = None,
        page_size: int = 1000,
    ):
        self.functions = functions
        self.client = client
        self.page_size = page_size

    def _invoke(self, name: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        result = self.functions.invoke(name, payload)
        if not isinstance(result, dict):
            raise EdgeFunctionError(name, "Unexpected response shape")
        return result

    def invoice_window(
        self, status_filter: str = "open-balanced", newest_first: bool = True
    ) -> FetchWindow:
        """Window over ``acumatica-invoice-bulk-fetch``."""
        if status_filter not in INVOICE_STATUS_FILTERS:
            raise ValueError(
                f"status_filter must be one of {', '.join(INVOICE_STATUS_FILTERS)}"
            )

        def fetch(skip: int, count: int) -> WindowResult:
            result = self._invoke(
                "acumatica-invoice-bulk-fetch",
                {
                    "count": count,
                    "skip": skip,
                    "statusFilter": status_filter,
                    "fetchNewestFirst": newest_first,
                },
            )
            if not result.get("success"):
                raise EdgeFunctionError(
                    "acumatica-invoice-bulk-fetch",
                    str(result.get("error") or "Failed to fetch invoices"),
                    payload=result,
                )
            return WindowResult(
                fetched=_int(result, "totalFetched"),
                saved=_int(result, "savedCount"),
                errors=_errors(result),
            )

        return fetch

    def payment_window(self, doc_type: str = "Payment") -> FetchWindow:
        """Window over ``acumatica-payment-bulk-fetch``.

        Saved is created plus updated; invoice links created are summed
        under ``invoice_links``.
        """
        if doc_type not in PAYMENT_DOC_TYPES:
            raise ValueError(f"doc_type must be one of {', '.join(PAYMENT_DOC_TYPES)}")

        def fetch(skip: int, count: int) -> WindowResult:
            result = self._invoke(
                "acumatica-payment-bulk-fetch",
                {
                    "count": count,
                    "skip": skip,
                    "docType": doc_type,
                    "fetchNewestFirst": True,
                    "fetchApplicationHistory": True,
                },
            )
            created = _int(result, "created")
            updated = _int(result, "updated")
            return WindowResult(
                fetched=_int(result, "totalFetched"),
                saved=created + updated,
                created=created,
                updated=updated,
                extra={"invoice_links": _int(result, "invoiceLinksCreated")},
                errors=_errors(result),
            )

        return fetch

    def customer_window(self) -> FetchWindow:
        """Window over ``acumatica-customer-bulk-fetch``."""

        def fetch(skip: int, count: int) -> WindowResult:
            result = self._invoke(
                "acumatica-customer-bulk-fetch", {"count": count, "skip": skip}
            )
            created = _int(result, "created")
            updated = _int(result, "updated")
            saved = _int(result, "savedCount") or created + updated
            return WindowResult(
                fetched=_int(result, "totalFetched"),
                saved=saved,
                created=created,
                updated=updated,
                errors=_errors(result),
            )

        return fetch

    def payment_data_window(self) -> FetchWindow:
        """Window over ``backfill-all-payment-data``.

        The function reports ``processed`` rather than a fetched count and
        ``remaining`` after the window; a window that processed nothing ends
        the loop.
        """

        def fetch(skip: int, count: int) -> WindowResult:
            result = self._invoke(
                "backfill-all-payment-data", {"batchSize": count, "skip": skip}
            )
            processed = _int(result, "processed")
            remaining = result.get("remaining")
            return WindowResult(
                fetched=processed,
                saved=processed,
                extra={
                    "applications_found": _int(result, "applicationsFound"),
                    "files_found": _int(result, "filesFound"),
                },
                errors=_errors(result),
                remaining=None if remaining is None else _int(result, "remaining"),
                exhausted=processed == 0,
            )

        return fetch

    def backfill_applications(self, synced_today: bool = False) -> Dict[str, Any]:
        """
        Fetch applications for payments that have none.

        Args:
            synced_today: Only payments synced since midnight

        Returns:
            Function result (processed, applicationsFound, remaining, errors)
        """
        payload: Dict[str, Any] = {
            "batchSize": 100,
            "skip": 0,
            "onlyWithoutApplications": True,
        }
        if synced_today:
            payload["syncedToday"] = True
        return self._invoke("backfill-payment-applications", payload)

    def application_stats(self, today: Optional[dt.date] = None) -> ApplicationStats:
        """Count payments, those without applications, and those synced today."""
        if self.client is None:
            raise ValueError("A SupabaseClient is required for application stats")

        payments = self.client.fetch_all(
            lambda: self.client.table("acumatica_payments").select(
                "id, last_sync_timestamp"
            ),
            page_size=self.page_size,
        )
        applied = self.client.fetch_all(
            lambda: self.client.table("payment_invoice_applications").select(
                "payment_id"
            ),
            page_size=self.page_size,
        )

        with_apps = {row.get("payment_id") for row in applied}
        without = sum(1 for p in payments if p.get("id") not in with_apps)

        # Midnight UTC of the given day
        day = today or dt.datetime.now(dt.timezone.utc).date()
        midnight = pd.Timestamp(day, tz="UTC")
        stamps = pd.to_datetime(
            pd.Series([p.get("last_sync_timestamp") for p in payments], dtype=object),
            utc=True,
            format="ISO8601",
            errors="coerce",
        )
        synced_today = int((stamps >= midnight).sum())

        return ApplicationStats(
            total=len(payments),
            without_applications=without,
            synced_today=synced_today,
        )
