"""Unit tests for the collectors command group."""

import datetime as dt
from unittest.mock import patch

import pytest

from ar_admin.cli.commands.collectors import collectors_group
from ar_admin.models.collectors import Collector, CollectorProgressPoint


@pytest.fixture
def service():
    with patch("ar_admin.cli.commands.collectors.CollectorService") as factory:
        yield factory.return_value


class TestListCollectors:
    def test_list(self, runner, console, service):
        service.available_collectors.return_value = [
            Collector(id="c-1", full_name="Cara Collector", role="collector"),
            Collector(id="c-2", email="dan@example.com"),
        ]

        result = runner.invoke(collectors_group, ["list"], obj=console)

        assert result.exit_code == 0
        assert "Cara Collector" in result.output
        assert "dan@example.com" in result.output

    def test_list_empty(self, runner, console, service):
        service.available_collectors.return_value = []

        result = runner.invoke(collectors_group, ["list"], obj=console)

        assert "No collectors available." in result.output


class TestReassign:
    def test_reassign_logs_activity(self, runner, console, service):
        with patch("ar_admin.cli.commands.collectors.log_activity") as log:
            result = runner.invoke(
                collectors_group,
                ["reassign", "inv-1", "--to", "c-2", "--notes", "Territory"],
                obj=console,
            )

        assert result.exit_code == 0
        service.reassign_invoice.assert_called_once_with(
            "inv-1", "c-2", assigned_by="user-1", notes="Territory"
        )
        log.assert_called_once_with(
            console.client,
            "user-1",
            "reassign_invoice",
            entity_type="invoice",
            entity_id="inv-1",
            details={"new_collector_id": "c-2"},
        )
        assert "Invoice reassigned" in result.output

    def test_reassign_blank_collector(self, runner, console, service):
        result = runner.invoke(
            collectors_group, ["reassign", "inv-1", "--to", " "], obj=console
        )

        assert result.exit_code == 3
        assert "collector: This field is required" in result.output
        service.reassign_invoice.assert_not_called()

    def test_reassign_missing_option(self, runner, console, service):
        result = runner.invoke(collectors_group, ["reassign", "inv-1"], obj=console)
        assert result.exit_code == 2


class TestProgress:
    def test_progress_defaults_to_current_user(self, runner, console, service):
        service.progress.return_value = [
            CollectorProgressPoint(
                date=dt.date(2024, 5, 1),
                closed_amount="1500.50",
                closed_count=3,
                red_status_count=1,
                total_assigned=20,
            ),
            CollectorProgressPoint(
                date=dt.date(2024, 5, 2), closed_count=1, no_change_count=4
            ),
        ]

        result = runner.invoke(collectors_group, ["progress"], obj=console)

        assert result.exit_code == 0
        service.progress.assert_called_once_with("user-1", days=30)
        assert "2024-05-01" in result.output
        assert "$1,500.50" in result.output
        assert "4 closed for $1,500.50, 1 red, 4 unchanged" in result.output

    def test_progress_for_collector_and_window(self, runner, console, service):
        service.progress.return_value = []

        result = runner.invoke(
            collectors_group,
            ["progress", "--days", "7", "--collector", "c-9"],
            obj=console,
        )

        assert result.exit_code == 0
        service.progress.assert_called_once_with("c-9", days=7)
        assert "No activity in the last 7 days." in result.output

    def test_progress_rejects_other_windows(self, runner, console, service):
        result = runner.invoke(
            collectors_group, ["progress", "--days", "14"], obj=console
        )
        assert result.exit_code == 2
