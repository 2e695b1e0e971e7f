"""Database cron job listing and toggling."""

import logging
from typing import List

from ar_admin.models.sync import CronJob
from ar_admin.services.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)


class CronService:
    def __init__(self, client: SupabaseClient):
        self.client = client

    def list_jobs(self) -> List[CronJob]:
        rows = self.client.rpc("get_cron_jobs") or []
        return [CronJob(**row) for row in rows]

    def toggle(self, job_id: int, currently_active: bool) -> bool:
        """Flip a job's active flag and return the new state."""
        new_active = not currently_active
        self.client.rpc("toggle_cron_job", {"job_id": job_id, "new_active": new_active})
        logger.info(f"Cron job {job_id} {'enabled' if new_active else 'disabled'}")
        return new_active
