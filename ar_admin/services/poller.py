"""Fixed-interval status polling."""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class PollOutcome:
    """How a polling session ended."""

    polls: int
    last_result: Any = None
    stopped: bool = False
    condition_met: bool = False


class StatusPoller:
    """
    Calls ``fetch`` now and then every ``interval`` seconds.

    Fetch errors are logged, passed to ``on_error`` and polling continues.
    ``stop()`` may be called from another thread or a signal handler and
    ends the wait immediately.

    Example:
        >>> poller = StatusPoller(service.get_progress, 3.0, render,
        ...                       until=lambda p: p.state == "completed")
        >>> outcome = poller.run()
    """

    def __init__(
        self,
        fetch: Callable[[], Any],
        interval: float,
        on_update: Callable[[Any], None],
        until: Optional[Callable[[Any], bool]] = None,
        max_polls: Optional[int] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        if max_polls is not None and max_polls < 1:
            raise ValueError("max_polls must be at least 1")

        self.fetch = fetch
        self.interval = interval
        self.on_update = on_update
        self.until = until
        self.max_polls = max_polls
        self.on_error = on_error
        self._stop_event = threading.Event()

    def stop(self) -> None:
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def run(self) -> PollOutcome:
        """Poll until stopped, the condition holds, or max_polls is reached."""
        outcome = PollOutcome(polls=0)

        while not self.stopped:
            outcome.polls += 1
            try:
                result = self.fetch()
            except Exception as e:
                logger.warning(f"Status poll {outcome.polls} failed: {e}")
                if self.on_error is not None:
                    self.on_error(e)
            else:
                outcome.last_result = result
                self.on_update(result)
                if self.until is not None and self.until(result):
                    outcome.condition_met = True
                    break

            if self.max_polls is not None and outcome.polls >= self.max_polls:
                break

            self._stop_event.wait(self.interval)

        outcome.stopped = self.stopped
        return outcome
