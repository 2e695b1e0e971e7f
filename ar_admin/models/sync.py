"""Synchronization, scheduler and backfill models."""

import datetime as dt
from typing import Any, Dict, List, Optional

from pydantic import Field

from ar_admin.models.base import BaseDataModel, ServerRecord

SCHEDULE_DESCRIPTIONS = {
    "* * * * *": "Every minute",
    "*/5 * * * *": "Every 5 minutes",
    "*/15 * * * *": "Every 15 minutes",
    "0 * * * *": "Hourly",
}

JOB_DESCRIPTIONS = {
    "acumatica-auto-sync": "Syncs invoices, payments, and customers from Acumatica",
    "auto-red-status-checker": "Automatically marks overdue invoices as red status",
    "check-invoice-reminders-every-minute": (
        "Checks for due reminders and triggers notifications"
    ),
    "email-scheduler-job": "Processes scheduled email formulas",
    "send-reminder-emails-every-5-minutes": "Sends reminder notification emails",
}


class SyncStatus(ServerRecord):
    """Per-entity sync health row of ``sync_status``."""

    id: str
    entity_type: str
    status: str = "idle"
    last_successful_sync: Optional[dt.datetime] = None
    records_synced: int = 0
    records_created: int = 0
    records_updated: int = 0
    sync_duration_ms: Optional[int] = None
    last_error: Optional[str] = None
    retry_count: int = 0
    sync_enabled: bool = True
    sync_interval_minutes: int = 5
    lookback_minutes: int = 10


class SyncConfig(BaseDataModel):
    """Editable scheduling fields of one ``sync_status`` row."""

    id: str
    entity_type: str
    sync_enabled: bool
    sync_interval_minutes: int = Field(..., ge=1, le=1440)
    lookback_minutes: int = Field(..., ge=1, le=10080)


class SyncLog(ServerRecord):
    """A row of ``sync_logs``."""

    id: str
    entity_type: str
    status: str
    sync_started_at: Optional[dt.datetime] = None
    sync_completed_at: Optional[dt.datetime] = None
    records_synced: int = 0
    records_created: int = 0
    records_updated: int = 0
    duration_ms: Optional[int] = None
    errors: List[Any] = Field(default_factory=list)
    created_at: Optional[dt.datetime] = None


class SyncChangeLog(ServerRecord):
    """A row of ``sync_change_logs``."""

    id: str
    sync_type: str
    action_type: str
    entity_id: Optional[str] = None
    entity_reference: Optional[str] = None
    entity_name: Optional[str] = None
    change_summary: Optional[str] = None
    change_details: Any = None
    sync_source: Optional[str] = None
    user_id: Optional[str] = None
    created_at: Optional[dt.datetime] = None


class SchedulerLog(ServerRecord):
    """A row of ``scheduler_execution_logs``."""

    id: str
    execution_id: Optional[str] = None
    executed_at: Optional[dt.datetime] = None
    execution_time_ms: int = 0
    total_assignments_checked: int = 0
    emails_queued: int = 0
    emails_sent: int = 0
    emails_failed: int = 0
    test_mode: bool = False
    detailed_recipients: List[Dict[str, Any]] = Field(default_factory=list)
    skipped_customers: List[Dict[str, Any]] = Field(default_factory=list)
    error_summary: Optional[str] = None


class SyncCredentials(BaseDataModel):
    """Acumatica connection settings stored in ``acumatica_sync_credentials``."""

    id: Optional[str] = None
    acumatica_url: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1, repr=False)
    company: str = ""
    branch: str = ""
    # Read by the scheduled sync trigger; rows without them are skipped
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = Field(default=None, repr=False)
    is_active: bool = True

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "SyncCredentials":
        fields = set(cls.model_fields)
        return cls(**{k: v for k, v in row.items() if k in fields and v is not None})


class CronJob(ServerRecord):
    """One entry of ``get_cron_jobs``."""

    jobid: int
    jobname: str
    schedule: str
    active: bool
    database: Optional[str] = None

    @property
    def schedule_description(self) -> str:
        return SCHEDULE_DESCRIPTIONS.get(self.schedule, self.schedule)

    @property
    def job_description(self) -> str:
        return JOB_DESCRIPTIONS.get(self.jobname, "")


class BackfillProgress(ServerRecord):
    """Server-side backfill tracker row of ``backfill_progress``.

    Attributes:
        total_items: Items the backfill has to process
        items_processed: Items processed so far
        started_at: When the current run started
        last_batch_at: When the last batch finished
        completed_at: When the run completed
    """

    id: Optional[str] = None
    backfill_type: str = "payment_data"
    is_running: bool = False
    batch_size: int = 0
    current_offset: int = 0
    total_items: int = 0
    items_processed: int = 0
    applications_found: int = 0
    attachments_found: int = 0
    errors_count: int = 0
    last_error: Optional[str] = None
    started_at: Optional[dt.datetime] = None
    last_batch_at: Optional[dt.datetime] = None
    completed_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @property
    def percent_complete(self) -> int:
        if self.total_items <= 0:
            return 0
        # half-up rounding
        return int(self.items_processed * 100 / self.total_items + 0.5)

    @property
    def remaining_items(self) -> int:
        return max(self.total_items - self.items_processed, 0)

    @property
    def state(self) -> str:
        if self.completed_at is not None:
            return "completed"
        if self.is_running:
            return "running"
        return "paused"

    def elapsed(self, now: Optional[dt.datetime] = None) -> Optional[dt.timedelta]:
        """Time since the run started, or None when it never started."""
        if self.started_at is None:
            return None
        current = now or dt.datetime.now(dt.timezone.utc)
        if self.started_at.tzinfo is None:
            current = current.replace(tzinfo=None)
        elif current.tzinfo is None:
            current = current.replace(tzinfo=dt.timezone.utc)
        return current - self.started_at

    def estimated_remaining(self) -> Optional[dt.timedelta]:
        """Extrapolate the rate observed between start and the last batch.

        Returns None when the run has not started, nothing was processed
        yet, or no time has passed between start and the last batch.
        """
        if self.started_at is None or self.last_batch_at is None:
            return None
        if self.items_processed == 0:
            return None

        observed = (self.last_batch_at - self.started_at).total_seconds()
        if observed <= 0:
            return None

        rate = self.items_processed / observed
        return dt.timedelta(seconds=self.remaining_items / rate)
