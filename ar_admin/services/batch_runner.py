"""
Sequential windowed batch loop used by the bulk fetch panels.

A window is the slice ``[skip, skip + count)`` of the remote record set.
Windows run strictly one after another; a failed window is never retried.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 1000


@dataclass
class WindowResult:
    """
    What one window reported.

    Attributes:
        fetched: Records read from the source
        saved: Records written locally
        created: New records
        updated: Changed records
        extra: Additional per-window counters, summed across windows
        errors: Non-fatal error messages
        remaining: Records still to process, when the source reports it
        exhausted: Whether the source has no more records; when None a
            window shorter than requested means exhausted
    """

    fetched: int = 0
    saved: int = 0
    created: int = 0
    updated: int = 0
    extra: Dict[str, int] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)
    remaining: Optional[int] = None
    exhausted: Optional[bool] = None


@dataclass
class BatchProgress:
    """Snapshot handed to the progress callback after every window."""

    batch_number: int
    skip: int
    count: int
    succeeded: bool
    total_fetched: int
    total_saved: int
    batches_succeeded: int
    batches_failed: int
    target: Optional[int] = None
    last_error: Optional[str] = None

    @property
    def position(self) -> int:
        """Offset reached, counting failed windows as covered."""
        return self.skip + self.count


@dataclass
class BatchSummary:
    """Totals of a batch loop."""

    start: int = 0
    next_skip: int = 0
    batches_attempted: int = 0
    batches_succeeded: int = 0
    batches_failed: int = 0
    total_fetched: int = 0
    total_saved: int = 0
    total_created: int = 0
    total_updated: int = 0
    extra: Dict[str, int] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)
    failed_windows: List[Tuple[int, int]] = field(default_factory=list)
    exhausted: bool = False
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return self.batches_failed == 0 and not self.cancelled


class BatchAbortedError(Exception):
    """A window failed and the loop was told not to continue."""

    def __init__(self, message: str, summary: BatchSummary):
        super().__init__(message)
        self.summary = summary


class BatchWindowRunner:
    """
    Walks a remote record set window by window.

    Stops when the end offset is reached, when a window returns fewer
    records than requested, when the source reports nothing remaining, on
    cancellation, or on the first failure when ``continue_on_error`` is
    false.

    Example:
        >>> runner = BatchWindowRunner(fetch, batch_size=100, start=0, end=500)
        >>> summary = runner.run()
        >>> summary.total_fetched
        500
    """

    def __init__(
        self,
        fetch_window: Callable[[int, int], WindowResult],
        batch_size: int = 100,
        start: int = 0,
        end: Optional[int] = None,
        pause_seconds: float = 0.5,
        continue_on_error: bool = True,
        on_progress: Optional[Callable[[BatchProgress], None]] = None,
        sleep: Optional[Callable[[float], None]] = None,
        max_consecutive_failures: Optional[int] = None,
    ):
        """
        Initialize the runner.

        Args:
            fetch_window: Called with (skip, count) for each window
            batch_size: Window size, 1 to 1000
            start: First offset
            end: Exclusive end offset, or None to run until exhausted
            pause_seconds: Pause between consecutive windows
            continue_on_error: Advance past failed windows instead of aborting
            on_progress: Receives a BatchProgress after every window
            sleep: Sleep function; defaults to a wait that stop() interrupts
            max_consecutive_failures: Give up after this many failed windows
                in a row (None for no limit)

        Raises:
            ValueError: If the window bounds are invalid
        """
        if not 1 <= batch_size <= MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}")
        if start < 0:
            raise ValueError("start must not be negative")
        if end is not None and end <= start:
            raise ValueError("end must be greater than start")
        if pause_seconds < 0:
            raise ValueError("pause_seconds must not be negative")

        self.fetch_window = fetch_window
        self.batch_size = batch_size
        self.start = start
        self.end = end
        self.pause_seconds = pause_seconds
        self.continue_on_error = continue_on_error
        self.on_progress = on_progress
        self.max_consecutive_failures = max_consecutive_failures

        self._stop_event = threading.Event()
        self._sleep = sleep or self._interruptible_sleep

    def _interruptible_sleep(self, seconds: float) -> None:
        self._stop_event.wait(seconds)

    def stop(self) -> None:
        """Request cancellation; the current window finishes first."""
        logger.info("Batch loop cancellation requested")
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def _target(self) -> Optional[int]:
        return None if self.end is None else self.end - self.start

    def _notify(self, progress: BatchProgress) -> None:
        if self.on_progress is not None:
            self.on_progress(progress)

    def run(self) -> BatchSummary:
        """
        Run windows until a stop condition is met.

        Returns:
            BatchSummary of the whole loop

        Raises:
            BatchAbortedError: If a window failed and continue_on_error is off
        """
        summary = BatchSummary(start=self.start, next_skip=self.start)
        skip = self.start
        consecutive_failures = 0

        logger.info(
            f"Starting batch loop at {self.start}"
            f"{'' if self.end is None else f' to {self.end}'} "
            f"with batch size {self.batch_size}"
        )

        while True:
            if self.end is not None and skip >= self.end:
                break
            if self.stopped:
                summary.cancelled = True
                break

            count = (
                self.batch_size
                if self.end is None
                else min(self.batch_size, self.end - skip)
            )
            summary.batches_attempted += 1
            batch_number = summary.batches_attempted

            try:
                result = self.fetch_window(skip, count)
            except Exception as e:
                message = f"Batch {batch_number} (skip {skip}): {e}"
                logger.error(message)
                summary.batches_failed += 1
                summary.errors.append(message)
                summary.failed_windows.append((skip, count))
                consecutive_failures += 1

                self._notify(
                    self._progress(summary, batch_number, skip, count, False, message)
                )

                if not self.continue_on_error:
                    summary.next_skip = skip
                    raise BatchAbortedError(message, summary) from e

                skip += count
                summary.next_skip = skip

                if (
                    self.max_consecutive_failures is not None
                    and consecutive_failures >= self.max_consecutive_failures
                ):
                    logger.warning(
                        f"Stopping after {consecutive_failures} consecutive "
                        "failed batches"
                    )
                    break

                self._pause_if_more(skip)
                continue

            consecutive_failures = 0
            summary.batches_succeeded += 1
            summary.total_fetched += result.fetched
            summary.total_saved += result.saved
            summary.total_created += result.created
            summary.total_updated += result.updated
            for key, value in result.extra.items():
                summary.extra[key] = summary.extra.get(key, 0) + value
            summary.errors.extend(result.errors)

            skip += count
            summary.next_skip = skip
            self._notify(
                self._progress(summary, batch_number, skip - count, count, True)
            )

            exhausted = (
                result.exhausted
                if result.exhausted is not None
                else result.fetched < count
            )
            if exhausted or result.remaining == 0:
                logger.info(f"Source exhausted after {summary.total_fetched} records")
                summary.exhausted = True
                break

            self._pause_if_more(skip)

        logger.info(
            f"Batch loop finished: {summary.batches_succeeded} succeeded, "
            f"{summary.batches_failed} failed, {summary.total_fetched} fetched"
        )
        return summary

    def _pause_if_more(self, skip: int) -> None:
        if self.stopped or self.pause_seconds <= 0:
            return
        if self.end is not None and skip >= self.end:
            return
        self._sleep(self.pause_seconds)

    def _progress(
        self,
        summary: BatchSummary,
        batch_number: int,
        skip: int,
        count: int,
        succeeded: bool,
        last_error: Optional[str] = None,
    ) -> BatchProgress:
        return BatchProgress(
            batch_number=batch_number,
            skip=skip,
            count=count,
            succeeded=succeeded,
            total_fetched=summary.total_fetched,
            total_saved=summary.total_saved,
            batches_succeeded=summary.batches_succeeded,
            batches_failed=summary.batches_failed,
            target=self._target(),
            last_error=last_error,
        )
