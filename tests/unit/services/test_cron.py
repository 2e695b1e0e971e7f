"""
Unit tests for cron job listing and toggling.
"""

import pytest

from ar_admin.services.cron import CronService


class TestCronService:
    """Test cases for CronService."""

    @pytest.fixture
    def service(self, mock_client):
        return CronService(mock_client)

    def test_list_jobs(self, service, mock_client):
        """Test jobs are read from the RPC with their descriptions."""
        mock_client.rpc.return_value = [
            {
                "jobid": 1,
                "jobname": "acumatica-auto-sync",
                "schedule": "*/5 * * * *",
                "active": True,
            },
            {"jobid": 2, "jobname": "custom", "schedule": "0 3 * * *", "active": False},
        ]

        jobs = service.list_jobs()

        mock_client.rpc.assert_called_once_with("get_cron_jobs")
        assert jobs[0].schedule_description == "Every 5 minutes"
        assert jobs[0].job_description.startswith("Syncs invoices")
        assert jobs[1].schedule_description == "0 3 * * *"
        assert jobs[1].job_description == ""

    def test_list_jobs_empty(self, service, mock_client):
        mock_client.rpc.return_value = None

        assert service.list_jobs() == []

    @pytest.mark.parametrize("active,expected", [(True, False), (False, True)])
    def test_toggle_flips_state(self, service, mock_client, active, expected):
        """Test toggling sends the inverted flag."""
        assert service.toggle(7, active) is expected

        mock_client.rpc.assert_called_once_with(
            "toggle_cron_job", {"job_id": 7, "new_active": expected}
        )
