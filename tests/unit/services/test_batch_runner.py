"""
Unit tests for the windowed batch loop.
"""

from unittest.mock import Mock

import pytest

from ar_admin.services.batch_runner import (
    BatchAbortedError,
    BatchWindowRunner,
    WindowResult,
)


def full_windows(total):
    """Fetch function over a source of ``total`` records."""

    def fetch(skip, count):
        fetched = max(0, min(count, total - skip))
        return WindowResult(fetched=fetched, saved=fetched, created=fetched)

    return Mock(side_effect=fetch)


class TestBatchWindowRunner:
    """Test cases for BatchWindowRunner."""

    @pytest.fixture
    def sleep(self):
        return Mock(name="sleep")

    def test_runs_to_end_offset(self, sleep):
        """Test the loop stops exactly at the end offset."""
        fetch = full_windows(10_000)
        runner = BatchWindowRunner(fetch, batch_size=100, end=250, sleep=sleep)

        summary = runner.run()

        assert [c.args for c in fetch.call_args_list] == [
            (0, 100),
            (100, 100),
            (200, 50),
        ]
        assert summary.total_fetched == 250
        assert summary.next_skip == 250
        assert summary.batches_succeeded == 3
        assert summary.success
        assert not summary.exhausted
        assert sleep.call_count == 2

    def test_short_window_means_exhausted(self, sleep):
        """Test an open-ended loop stops at the first short window."""
        fetch = full_windows(230)
        runner = BatchWindowRunner(fetch, batch_size=100, sleep=sleep)

        summary = runner.run()

        assert fetch.call_count == 3
        assert summary.total_fetched == 230
        assert summary.exhausted

    def test_remaining_zero_stops(self, sleep):
        """Test the source's remaining count ends the loop."""
        fetch = Mock(return_value=WindowResult(fetched=100, remaining=0))
        runner = BatchWindowRunner(fetch, batch_size=100, sleep=sleep)

        summary = runner.run()

        assert fetch.call_count == 1
        assert summary.exhausted

    def test_explicit_exhausted_flag_wins(self, sleep):
        fetch = Mock(
            side_effect=[
                WindowResult(fetched=10, exhausted=False),
                WindowResult(fetched=0, exhausted=True),
            ]
        )

        summary = BatchWindowRunner(fetch, batch_size=100, sleep=sleep).run()

        assert fetch.call_count == 2
        assert summary.total_fetched == 10

    def test_failed_window_is_skipped_when_continuing(self, sleep):
        """Test a failing window is recorded and the loop moves on."""
        fetch = Mock(
            side_effect=[
                WindowResult(fetched=100),
                RuntimeError("timeout"),
                WindowResult(fetched=100),
            ]
        )
        runner = BatchWindowRunner(fetch, batch_size=100, end=300, sleep=sleep)

        summary = runner.run()

        assert summary.batches_failed == 1
        assert summary.failed_windows == [(100, 100)]
        assert summary.errors == ["Batch 2 (skip 100): timeout"]
        assert summary.total_fetched == 200
        assert summary.next_skip == 300
        assert not summary.success

    def test_stop_on_error_raises_with_resume_point(self, sleep):
        """Test an aborted loop reports where to resume."""
        fetch = Mock(side_effect=[WindowResult(fetched=50), RuntimeError("boom")])
        runner = BatchWindowRunner(
            fetch, batch_size=50, end=500, continue_on_error=False, sleep=sleep
        )

        with pytest.raises(BatchAbortedError) as exc_info:
            runner.run()

        summary = exc_info.value.summary
        assert summary.next_skip == 50
        assert summary.batches_failed == 1
        assert fetch.call_count == 2

    def test_consecutive_failure_limit(self, sleep):
        """Test an open-ended loop gives up after repeated failures."""
        fetch = Mock(side_effect=RuntimeError("down"))
        runner = BatchWindowRunner(
            fetch, batch_size=10, max_consecutive_failures=3, sleep=sleep
        )

        summary = runner.run()

        assert fetch.call_count == 3
        assert summary.batches_failed == 3
        assert summary.next_skip == 30

    def test_success_resets_consecutive_failures(self, sleep):
        fetch = Mock(
            side_effect=[
                RuntimeError("a"),
                WindowResult(fetched=10),
                RuntimeError("b"),
                WindowResult(fetched=5),
            ]
        )
        runner = BatchWindowRunner(
            fetch, batch_size=10, max_consecutive_failures=2, sleep=sleep
        )

        summary = runner.run()

        assert fetch.call_count == 4
        assert summary.exhausted

    def test_stop_cancels_after_current_window(self, sleep):
        """Test stop() lets the running window finish and then exits."""
        runner = BatchWindowRunner(Mock(), batch_size=10, sleep=sleep)

        def fetch(skip, count):
            runner.stop()
            return WindowResult(fetched=count)

        runner.fetch_window = fetch

        summary = runner.run()

        assert summary.batches_attempted == 1
        assert summary.cancelled
        assert summary.next_skip == 10
        assert not summary.success
        sleep.assert_not_called()

    def test_stop_during_last_window_is_not_cancelled(self, sleep):
        """Test a loop that reached its end offset is not reported cancelled."""
        runner = BatchWindowRunner(Mock(), batch_size=10, end=20, sleep=sleep)

        def fetch(skip, count):
            if skip == 10:
                runner.stop()
            return WindowResult(fetched=count)

        runner.fetch_window = fetch

        summary = runner.run()

        assert summary.batches_attempted == 2
        assert not summary.cancelled
        assert summary.success
        assert summary.next_skip == 20

    def test_stop_during_short_window_is_not_cancelled(self, sleep):
        """Test an exhausted source wins over a late stop()."""
        runner = BatchWindowRunner(Mock(), batch_size=10, sleep=sleep)

        def fetch(skip, count):
            runner.stop()
            return WindowResult(fetched=4)

        runner.fetch_window = fetch

        summary = runner.run()

        assert summary.exhausted
        assert not summary.cancelled
        assert summary.success

    def test_progress_callback(self, sleep):
        """Test every window reports a progress snapshot."""
        progress = []
        runner = BatchWindowRunner(
            full_windows(1000),
            batch_size=40,
            start=20,
            end=100,
            on_progress=progress.append,
            sleep=sleep,
        )

        runner.run()

        assert [p.position for p in progress] == [60, 100]
        assert progress[-1].target == 80
        assert progress[-1].total_fetched == 80
        assert all(p.succeeded for p in progress)

    def test_extra_counters_and_errors_are_summed(self, sleep):
        fetch = Mock(
            side_effect=[
                WindowResult(fetched=2, extra={"files": 3}, errors=["bad row"]),
                WindowResult(fetched=1, extra={"files": 1, "applications": 4}),
            ]
        )

        summary = BatchWindowRunner(fetch, batch_size=2, sleep=sleep).run()

        assert summary.extra == {"files": 4, "applications": 4}
        assert summary.errors == ["bad row"]

    def test_no_pause_when_disabled(self, sleep):
        runner = BatchWindowRunner(
            full_windows(30), batch_size=10, end=30, pause_seconds=0, sleep=sleep
        )

        runner.run()

        sleep.assert_not_called()

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"batch_size": 0},
            {"batch_size": 1001},
            {"start": -1},
            {"start": 10, "end": 10},
            {"pause_seconds": -1},
        ],
    )
    def test_invalid_bounds(self, kwargs):
        """Test window bounds are validated up front."""
        with pytest.raises(ValueError):
            BatchWindowRunner(Mock(), **kwargs)
