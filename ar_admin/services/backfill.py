"""Monitor and control of the server-side payment data backfill."""

import logging
from typing import Any, Dict, Optional

from ar_admin.models.sync import BackfillProgress
from ar_admin.services.edge_functions import EdgeFunctionClient
from ar_admin.services.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

RESET_VALUES = {
    "is_running": False,
    "current_offset": 0,
    "items_processed": 0,
    "applications_found": 0,
    "attachments_found": 0,
    "errors_count": 0,
    "last_error": None,
    "started_at": None,
    "last_batch_at": None,
    "completed_at": None,
}


class BackfillService:
    """Reads and resets ``backfill_progress`` and triggers the backfill job."""

    def __init__(self, client: SupabaseClient, functions: EdgeFunctionClient):
        self.client = client
        self.functions = functions

    def get_progress(
        self, backfill_type: str = "payment_data"
    ) -> Optional[BackfillProgress]:
        """Progress row, or None when the tracker was never initialized."""
        result = (
            self.client.table("backfill_progress")
            .select("*")
            .eq("backfill_type", backfill_type)
            .maybe_single()
            .execute()
        )
        return BackfillProgress(**result.data) if result.data else None

    def trigger(self) -> Dict[str, Any]:
        """Start or resume the backfill. Authorized with the anon key."""
        result = self.functions.invoke(
            "auto-backfill-payment-data", {}, use_anon_key=True
        )
        logger.info(f"Backfill triggered: {result}")
        return result

    def reset(self, backfill_type: str = "payment_data") -> None:
        """Zero the tracker so the next run starts from the beginning."""
        (
            self.client.table("backfill_progress")
            .update(RESET_VALUES)
            .eq("backfill_type", backfill_type)
            .execute()
        )
        logger.info(f"Backfill progress for {backfill_type} reset")
