"""Unit tests for progress display."""

from unittest.mock import MagicMock, patch

import pytest

from ar_admin.cli.utils.progress import BatchProgressReporter, ProgressTracker
from ar_admin.services.batch_runner import BatchProgress


def progress(batch_number=1, skip=0, count=100, succeeded=True, **extra):
    values = dict(
        batch_number=batch_number,
        skip=skip,
        count=count,
        succeeded=succeeded,
        total_fetched=100 * batch_number,
        total_saved=90 * batch_number,
        batches_succeeded=batch_number,
        batches_failed=0,
    )
    values.update(extra)
    return BatchProgress(**values)


class TestProgressTracker:
    @pytest.fixture
    def tracker(self):
        return ProgressTracker(["Load invoices", "Summarize", "Export"])

    def test_initial_state(self, tracker):
        assert tracker.total_stages == 3
        assert tracker.current_stage == 0
        assert tracker.get_current_message() == "[1/3] Load invoices"
        assert not tracker.is_complete()

    def test_advance(self, tracker):
        tracker.advance()
        assert tracker.get_current_message() == "[2/3] Summarize"

    def test_advance_echoes_message(self, tracker, capsys):
        tracker.advance("12 invoices loaded")
        assert "12 invoices loaded" in capsys.readouterr().out

    def test_complete(self, tracker):
        for _ in range(3):
            tracker.advance()

        assert tracker.is_complete()
        assert tracker.get_current_message() == "[3/3] Complete"


class TestBatchProgressReporter:
    def test_open_ended_prints_success_line(self, capsys):
        with BatchProgressReporter() as reporter:
            reporter(progress(batch_number=2, skip=100, count=100))

        output = capsys.readouterr().out
        assert "Batch 2 (100-200): 200 fetched, 180 saved" in output

    def test_open_ended_prints_failure_line(self, capsys):
        with BatchProgressReporter() as reporter:
            reporter(progress(succeeded=False, last_error="HTTP 500"))

        assert "Batch 1 (0-100) failed: HTTP 500" in capsys.readouterr().out

    def test_bounded_range_drives_progress_bar(self):
        bar = MagicMock()
        with patch(
            "ar_admin.cli.utils.progress.click.progressbar", return_value=bar
        ) as factory:
            with BatchProgressReporter(start=1000, end=1250, label="Invoices") as r:
                r(progress(batch_number=1, skip=1000, count=100))
                r(progress(batch_number=2, skip=1100, count=100))
                r(progress(batch_number=3, skip=1200, count=50))

        factory.assert_called_once_with(length=250, label="Invoices", show_pos=True)
        assert [c.args[0] for c in bar.update.call_args_list] == [100, 100, 50]
        bar.__enter__.assert_called_once()
        bar.__exit__.assert_called_once()

    def test_exit_does_not_swallow_errors(self):
        with pytest.raises(RuntimeError):
            with BatchProgressReporter():
                raise RuntimeError("boom")
