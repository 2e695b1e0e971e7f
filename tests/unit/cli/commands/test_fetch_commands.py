"""Unit tests for the bulk fetch command group."""

from unittest.mock import patch

import pytest

from ar_admin.cli.commands.fetch import fetch_group
from ar_admin.models.users import UserPermission
from ar_admin.permissions import PermissionSet
from ar_admin.services.batch_runner import WindowResult


class FakeSource:
    """Serves ``total`` records window by window; listed offsets fail."""

    def __init__(self, total, fail_at=()):
        self.total = total
        self.fail_at = set(fail_at)
        self.calls = []

    def __call__(self, skip, count):
        self.calls.append((skip, count))
        if skip in self.fail_at:
            raise RuntimeError(f"Acumatica timeout at {skip}")
        fetched = max(0, min(count, self.total - skip))
        return WindowResult(fetched=fetched, saved=fetched, created=fetched)


@pytest.fixture
def service():
    with patch("ar_admin.cli.commands.fetch.BulkFetchService") as factory:
        yield factory.return_value


class TestFetchInvoices:
    def test_bounded_range(self, runner, console, service):
        source = FakeSource(total=10_000)
        service.invoice_window.return_value = source

        result = runner.invoke(
            fetch_group,
            [
                "invoices",
                "--status-filter",
                "all",
                "--batch-size",
                "100",
                "--end",
                "250",
            ],
            obj=console,
        )

        assert result.exit_code == 0, result.output
        service.invoice_window.assert_called_once_with("all", newest_first=True)
        assert source.calls == [(0, 100), (100, 100), (200, 50)]
        assert "3 ok / 0 failed" in result.output
        assert "Fetch complete" in result.output

    def test_default_batch_size_from_settings(self, runner, console, service):
        source = FakeSource(total=150)
        service.invoice_window.return_value = source

        result = runner.invoke(fetch_group, ["invoices", "--oldest-first"], obj=console)

        assert result.exit_code == 0
        service.invoice_window.assert_called_once_with(
            "open-balanced", newest_first=False
        )
        assert source.calls == [(0, 100), (100, 100)]

    @pytest.mark.parametrize(
        "args, message",
        [
            (["--batch-size", "1001"], "Must be at most 1000"),
            (["--batch-size", "0"], "Must be at least 1"),
            (["--start", "-1"], "Must be at least 0"),
            (["--start", "500", "--end", "500"], "End must be greater than start"),
        ],
    )
    def test_invalid_window_options(self, runner, console, service, args, message):
        result = runner.invoke(fetch_group, ["invoices", *args], obj=console)

        assert result.exit_code == 3
        assert message in result.output
        service.invoice_window.assert_not_called()

    def test_unknown_status_filter(self, runner, console, service):
        result = runner.invoke(
            fetch_group, ["invoices", "--status-filter", "paid"], obj=console
        )
        assert result.exit_code == 2


class TestFailures:
    def test_failed_window_skipped_by_default(self, runner, console, service):
        source = FakeSource(total=10_000, fail_at={100})
        service.payment_window.return_value = source

        result = runner.invoke(fetch_group, ["payments", "--end", "300"], obj=console)

        assert result.exit_code == 0
        assert source.calls == [(0, 100), (100, 100), (200, 100)]
        assert "2 ok / 1 failed" in result.output
        assert "Failed window 100-200" in result.output
        assert "Fetch finished with failed batches" in result.output

    def test_stop_on_error_aborts_with_resume_hint(self, runner, console, service):
        source = FakeSource(total=10_000, fail_at={100})
        service.payment_window.return_value = source

        result = runner.invoke(
            fetch_group,
            ["payments", "--end", "300", "--stop-on-error"],
            obj=console,
        )

        assert result.exit_code == 4
        assert source.calls == [(0, 100), (100, 100)]
        assert "Acumatica timeout at 100" in result.output
        assert "Resume with --start 100" in result.output

    def test_open_ended_gives_up_after_consecutive_failures(
        self, runner, console, service
    ):
        source = FakeSource(total=10_000, fail_at={0, 100, 200, 300, 400, 500})
        service.customer_window.return_value = source

        result = runner.invoke(fetch_group, ["customers"], obj=console)

        assert result.exit_code == 0
        assert len(source.calls) == 5
        assert "0 ok / 5 failed" in result.output


class TestOpenEnded:
    def test_runs_until_short_window(self, runner, console, service):
        source = FakeSource(total=230)
        service.payment_window.return_value = source

        result = runner.invoke(
            fetch_group,
            ["payments", "--doc-type", "Credit Memo", "--start", "100"],
            obj=console,
        )

        assert result.exit_code == 0
        service.payment_window.assert_called_once_with("Credit Memo")
        assert source.calls == [(100, 100), (200, 100)]
        assert "Batch 2 (200-300): 130 fetched, 130 saved" in result.output
        assert "Fetch complete" in result.output

    def test_customers_require_create_permission(self, runner, console, service):
        read_only = PermissionSet(
            "manager", [UserPermission(permission_key="acumatica", can_view=True)]
        )
        with patch("ar_admin.cli.context.load_permissions", return_value=read_only):
            result = runner.invoke(fetch_group, ["customers"], obj=console)

        assert result.exit_code == 10
        service.customer_window.assert_not_called()
