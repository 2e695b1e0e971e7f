"""
Sync administration: status, history, manual and date-range syncs,
scheduling configuration and Acumatica credentials.
"""

import datetime as dt
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ar_admin.models.sync import (
    SchedulerLog,
    SyncChangeLog,
    SyncConfig,
    SyncCredentials,
    SyncLog,
    SyncStatus,
)
from ar_admin.services.edge_functions import EdgeFunctionClient
from ar_admin.services.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

SYNC_ENTITIES = ("invoice", "payment", "customer")
RANGE_TYPES = (
    "last_week",
    "this_week",
    "last_month",
    "this_month",
    "last_30_days",
    "last_90_days",
    "custom",
)

END_OF_DAY = dt.time(23, 59, 59, 999000)


@dataclass
class SyncRunResult:
    """Counts reported by a manual sync."""

    created: int = 0
    updated: int = 0
    fetched: int = 0
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LogPage:
    """One page of ``sync_logs``."""

    rows: List[SyncLog]
    total: int
    page: int
    per_page: int

    @property
    def pages(self) -> int:
        return max(1, math.ceil(self.total / self.per_page))


def _check_entity(entity: str) -> None:
    if entity not in SYNC_ENTITIES:
        raise ValueError(f"entity must be one of {', '.join(SYNC_ENTITIES)}")


def _to_utc_iso(value: dt.datetime) -> str:
    # Naive values are local wall-clock time
    aware = value if value.tzinfo else value.astimezone()
    text = aware.astimezone(dt.timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def resolve_date_range(
    range_type: str,
    now: Optional[dt.datetime] = None,
    start: Optional[dt.date] = None,
    end: Optional[dt.date] = None,
) -> Tuple[dt.datetime, dt.datetime]:
    """
    Turn a named range into start and end datetimes in local time.

    Weeks run Sunday to Saturday. Open ranges (this week, this month, last
    N days) end at the end of today.

    Args:
        range_type: One of RANGE_TYPES
        now: Reference time, defaults to the current local time
        start: First day for ``custom``
        end: Last day for ``custom``, included up to 23:59:59

    Raises:
        ValueError: Unknown range type, or a custom range missing a date
            or ending before it starts
    """
    if range_type not in RANGE_TYPES:
        raise ValueError(f"range_type must be one of {', '.join(RANGE_TYPES)}")

    if range_type == "custom":
        if start is None or end is None:
            raise ValueError("Please select both start and end dates for custom range")
        if end < start:
            raise ValueError("End date must be on or after the start date")
        return (
            dt.datetime.combine(start, dt.time.min),
            dt.datetime.combine(end, dt.time(23, 59, 59)),
        )

    current = now or dt.datetime.now()
    today = current.date()
    end_of_today = dt.datetime.combine(today, END_OF_DAY)
    days_since_sunday = (today.weekday() + 1) % 7

    if range_type == "last_week":
        first = today - dt.timedelta(days=days_since_sunday + 7)
        last = first + dt.timedelta(days=6)
        return (
            dt.datetime.combine(first, dt.time.min),
            dt.datetime.combine(last, END_OF_DAY),
        )
    if range_type == "this_week":
        first = today - dt.timedelta(days=days_since_sunday)
        return dt.datetime.combine(first, dt.time.min), end_of_today
    if range_type == "last_month":
        last = today.replace(day=1) - dt.timedelta(days=1)
        return (
            dt.datetime.combine(last.replace(day=1), dt.time.min),
            dt.datetime.combine(last, END_OF_DAY),
        )
    if range_type == "this_month":
        return dt.datetime.combine(today.replace(day=1), dt.time.min), end_of_today

    days = 30 if range_type == "last_30_days" else 90
    first = today - dt.timedelta(days=days)
    return dt.datetime.combine(first, dt.time.min), end_of_today


class SyncService:
    """Reads sync state and triggers server-side syncs."""

    def __init__(self, client: SupabaseClient, functions: EdgeFunctionClient):
        self.client = client
        self.functions = functions

    def statuses(self) -> List[SyncStatus]:
        result = (
            self.client.table("sync_status").select("*").order("entity_type").execute()
        )
        return [SyncStatus(**row) for row in result.data or []]

    def logs(self, page: int = 1, per_page: int = 50) -> LogPage:
        """Newest-first page of ``sync_logs`` with the exact total."""
        if page < 1 or per_page < 1:
            raise ValueError("page and per_page must be at least 1")

        start = (page - 1) * per_page
        result = (
            self.client.table("sync_logs")
            .select("*", count="exact")
            .order("created_at", ascending=False)
            .range(start, start + per_page - 1)
            .execute()
        )
        rows = [SyncLog(**row) for row in result.data or []]
        total = result.count if result.count is not None else len(rows)
        return LogPage(rows=rows, total=total, page=page, per_page=per_page)

    def change_logs(
        self, limit: int = 100, sync_type: Optional[str] = None
    ) -> List[SyncChangeLog]:
        query = self.client.table("sync_change_logs").select("*")
        if sync_type:
            query = query.eq("sync_type", sync_type)
        result = query.order("created_at", ascending=False).limit(limit).execute()
        return [SyncChangeLog(**row) for row in result.data or []]

    def scheduler_logs(self, limit: int = 50) -> List[SchedulerLog]:
        result = (
            self.client.table("scheduler_execution_logs")
            .select("*")
            .order("executed_at", ascending=False)
            .limit(limit)
            .execute()
        )
        return [SchedulerLog(**row) for row in result.data or []]

    def run_master_sync(self) -> SyncRunResult:
        """Sync every entity through ``acumatica-master-sync``."""
        result = self.functions.invoke("acumatica-master-sync", {}, use_anon_key=True)
        summary = result.get("summary") or {}
        run = SyncRunResult(
            created=int(summary.get("totalCreated") or 0),
            updated=int(summary.get("totalUpdated") or 0),
            fetched=int(summary.get("totalFetched") or 0),
            raw=result,
        )
        logger.info(
            f"Master sync completed: {run.created} created, {run.updated} updated, "
            f"{run.fetched} fetched"
        )
        return run

    def run_entity_sync(self, entity: str) -> SyncRunResult:
        _check_entity(entity)
        result = self.functions.invoke(
            f"acumatica-{entity}-incremental-sync", {}, use_anon_key=True
        )
        return SyncRunResult(
            created=int(result.get("created") or 0),
            updated=int(result.get("updated") or 0),
            fetched=int(result.get("fetched") or 0),
            raw=result,
        )

    def sync_payment_links(self) -> Dict[str, int]:
        """Extract payment to invoice links from payment history."""
        result = self.functions.invoke(
            "payment-invoice-links-sync", {}, use_anon_key=True
        )
        return {
            "links_created": int(result.get("total_links_created") or 0),
            "payments_processed": int(result.get("total_payments_processed") or 0),
        }

    def run_date_range_sync(
        self,
        entity: str,
        range_type: str,
        start: Optional[dt.date] = None,
        end: Optional[dt.date] = None,
        now: Optional[dt.datetime] = None,
    ) -> Dict[str, Any]:
        """
        Re-sync one entity over a date range.

        Returns:
            The function's response
        """
        _check_entity(entity)
        first, last = resolve_date_range(range_type, now=now, start=start, end=end)
        payload = {"startDate": _to_utc_iso(first), "endDate": _to_utc_iso(last)}
        logger.info(f"Date range sync for {entity}: {payload}")
        return self.functions.invoke(f"acumatica-{entity}-date-range-sync", payload)

    def configs(self) -> List[SyncConfig]:
        result = (
            self.client.table("sync_status")
            .select(
                "id, entity_type, sync_enabled, sync_interval_minutes, lookback_minutes"
            )
            .order("entity_type")
            .execute()
        )
        return [SyncConfig(**row) for row in result.data or []]

    def save_configs(
        self, changes: List[SyncConfig], now: Optional[dt.datetime] = None
    ) -> int:
        """Write each config back to its row. Stops at the first failure."""
        stamp = (now or dt.datetime.now(dt.timezone.utc)).isoformat()
        for config in changes:
            (
                self.client.table("sync_status")
                .update(
                    {
                        "sync_enabled": config.sync_enabled,
                        "sync_interval_minutes": config.sync_interval_minutes,
                        "lookback_minutes": config.lookback_minutes,
                        "updated_at": stamp,
                    }
                )
                .eq("id", config.id)
                .execute()
            )
        logger.info(f"Saved {len(changes)} sync configurations")
        return len(changes)

    def active_credentials(self) -> Optional[SyncCredentials]:
        result = (
            self.client.table("acumatica_sync_credentials")
            .select("*")
            .eq("is_active", True)
            .order("created_at", ascending=False)
            .limit(1)
            .maybe_single()
            .execute()
        )
        return SyncCredentials.from_row(result.data) if result.data else None

    def save_credentials(self, new: SyncCredentials) -> SyncCredentials:
        """Deactivate the active credentials and store ``new`` as active."""
        current = self.active_credentials()
        if current is not None and current.id:
            (
                self.client.table("acumatica_sync_credentials")
                .update({"is_active": False})
                .eq("id", current.id)
                .execute()
            )

        if not (new.supabase_url and new.supabase_anon_key):
            logger.warning(
                "Credentials saved without project URL and anon key; "
                "scheduled syncs will not pick them up"
            )

        row = new.model_dump(exclude={"id"})
        row["is_active"] = True
        result = (
            self.client.table("acumatica_sync_credentials")
            .insert(row)
            .single()
            .execute()
        )
        logger.info(f"Saved Acumatica credentials for {new.username}")
        return SyncCredentials.from_row(result.data or row)
