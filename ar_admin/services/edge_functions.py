"""
Client for serverless edge functions under ``/functions/v1``.

Edge function calls are never retried: a repeated bulk fetch or sync would
redo server-side work.
"""

import logging
from typing import Any, Dict, Optional

import requests

from ar_admin.services.errors import EdgeFunctionError
from ar_admin.utils.logging_utils import sanitize_sensitive_data

logger = logging.getLogger(__name__)

# Every edge function the console invokes
FUNCTIONS: Dict[str, str] = {
    "acumatica-invoice-bulk-fetch": "Fetch a window of invoices from Acumatica",
    "acumatica-payment-bulk-fetch": "Fetch a window of payments from Acumatica",
    "acumatica-customer-bulk-fetch": "Fetch a window of customers from Acumatica",
    "acumatica-invoice-incremental-sync": "Sync recently modified invoices",
    "acumatica-payment-incremental-sync": "Sync recently modified payments",
    "acumatica-customer-incremental-sync": "Sync recently modified customers",
    "acumatica-invoice-date-range-sync": "Sync invoices in a date range",
    "acumatica-payment-date-range-sync": "Sync payments in a date range",
    "acumatica-customer-date-range-sync": "Sync customers in a date range",
    "acumatica-master-sync": "Run the incremental sync for every entity",
    "payment-invoice-links-sync": "Rebuild payment to invoice links",
    "backfill-all-payment-data": "Fetch applications and files for a payment window",
    "backfill-payment-applications": "Fetch missing payment applications",
    "auto-backfill-payment-data": "Start or resume the background backfill",
    "test-acumatica-credentials": "Check Acumatica login details",
    "acumatica-get-payment-count": "Count payments in Acumatica for a date range",
    "send-temporary-password": "Email a temporary password to a user",
    "force-delete-user": "Delete a user and all their data",
    "send-reminder-emails": "Send due reminder notification emails",
}


class EdgeFunctionClient:
    """
    Invokes edge functions with bearer authorization.

    The bearer token is the signed-in user's access token, or the anon key
    when there is no session or the caller asks for it.
    """

    def __init__(
        self,
        url: str,
        anon_key: str,
        access_token: Optional[str] = None,
        timeout: float = 150.0,
        session: Optional[requests.Session] = None,
    ):
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.access_token = access_token
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(
        cls, config, access_token: Optional[str] = None
    ) -> "EdgeFunctionClient":
        return cls(
            url=config.supabase_url,
            anon_key=config.supabase_anon_key,
            access_token=access_token,
            timeout=config.function_timeout,
        )

    def function_url(self, name: str) -> str:
        return f"{self.url}/functions/v1/{name}"

    def invoke(
        self,
        name: str,
        payload: Optional[Dict[str, Any]] = None,
        use_anon_key: bool = False,
    ) -> Any:
        """
        POST a JSON payload to an edge function.

        Args:
            name: Function name
            payload: JSON body (empty object when None)
            use_anon_key: Authorize with the anon key even when signed in

        Returns:
            Parsed JSON response

        Raises:
            EdgeFunctionError: On network failure, non-2xx status, a body
                that is not JSON, or a body reporting failure
        """
        if name not in FUNCTIONS:
            logger.warning(f"Invoking unregistered edge function {name}")

        token = self.anon_key if use_anon_key else (self.access_token or self.anon_key)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
            "apikey": self.anon_key,
        }
        body = payload or {}

        logger.info(
            f"Invoking edge function {name}",
            extra={"payload": sanitize_sensitive_data(body)},
        )

        try:
            response = self.session.post(
                self.function_url(name),
                json=body,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise EdgeFunctionError(name, f"Network error: {e}") from e

        try:
            result = response.json()
        except ValueError:
            result = None

        if not response.ok:
            message = None
            if isinstance(result, dict):
                message = result.get("error") or result.get("message")
            raise EdgeFunctionError(
                name,
                str(message or response.text or f"HTTP {response.status_code}"),
                status_code=response.status_code,
                payload=result if isinstance(result, dict) else None,
            )

        if result is None:
            raise EdgeFunctionError(
                name,
                f"Invalid JSON response: {response.text[:200]}",
                status_code=response.status_code,
            )

        if isinstance(result, dict) and (
            result.get("success") is False or result.get("error")
        ):
            raise EdgeFunctionError(
                name,
                str(result.get("error") or result.get("message") or "Unknown error"),
                status_code=response.status_code,
                payload=result,
            )

        logger.debug(f"Edge function {name} returned HTTP {response.status_code}")
        return result
