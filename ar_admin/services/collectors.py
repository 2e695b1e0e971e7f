"""Collector listing, invoice reassignment and daily progress."""

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from ar_admin.models.collectors import Collector, CollectorProgressPoint
from ar_admin.services.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

PROGRESS_WINDOWS = (7, 30, 90)


@dataclass
class ProgressSummary:
    """Totals over a collector's progress window."""

    total_closed: int = 0
    closed_amount: float = 0.0
    red_count: int = 0
    no_change_count: int = 0


def summarize_progress(points: Iterable[CollectorProgressPoint]) -> ProgressSummary:
    summary = ProgressSummary()
    for point in points:
        summary.total_closed += point.closed_count
        summary.closed_amount += point.closed_amount
        summary.red_count += point.red_status_count
        summary.no_change_count += point.no_change_count
    return summary


class CollectorService:
    def __init__(self, client: SupabaseClient):
        self.client = client

    def available_collectors(self) -> List[Collector]:
        rows = self.client.rpc("get_available_collectors") or []
        return [Collector(**row) for row in rows]

    def reassign_invoice(
        self,
        invoice_id: str,
        new_collector_id: Optional[str],
        assigned_by: str,
        notes: Optional[str] = None,
    ) -> None:
        """
        Move an invoice to another collector.

        Raises:
            ValueError: If no collector is selected
        """
        if not new_collector_id:
            raise ValueError("Please select a collector")

        self.client.rpc(
            "reassign_invoice_collector",
            {
                "p_invoice_id": invoice_id,
                "p_new_collector_id": new_collector_id,
                "p_assigned_by": assigned_by,
                "p_notes": notes or None,
            },
        )
        logger.info(f"Invoice {invoice_id} reassigned to {new_collector_id}")

    def progress(
        self, collector_id: str, days: int = 30, today: Optional[dt.date] = None
    ) -> List[CollectorProgressPoint]:
        """Daily progress over the last ``days`` days, ending today."""
        if days not in PROGRESS_WINDOWS:
            raise ValueError(
                f"days must be one of {', '.join(str(d) for d in PROGRESS_WINDOWS)}"
            )

        end = today or dt.date.today()
        start = end - dt.timedelta(days=days)
        rows = self.client.rpc(
            "get_collector_progress",
            {
                "p_collector_id": collector_id,
                "p_start_date": start.isoformat(),
                "p_end_date": end.isoformat(),
            },
        )
        return [CollectorProgressPoint(**row) for row in rows or []]
