"""Progress display for multi-step commands and batch loops."""

from typing import List, Optional

import click

from ar_admin.cli.utils.formatters import format_error, format_info
from ar_admin.services.batch_runner import BatchProgress


class ProgressTracker:
    """Track progress through the steps of a command.

    Attributes:
        stages: List of stage names
        total_stages: Total number of stages
        current_stage: Current stage index (0-based)
    """

    def __init__(self, stages: List[str]):
        self.stages = stages
        self.total_stages = len(stages)
        self.current_stage = 0

    def advance(self, message: Optional[str] = None):
        """Move to the next stage, echoing ``message`` first."""
        if message:
            click.echo(f"  {message}")
        self.current_stage += 1

    def get_current_message(self) -> str:
        if self.current_stage < self.total_stages:
            stage_name = self.stages[self.current_stage]
            return f"[{self.current_stage + 1}/{self.total_stages}] {stage_name}"
        return f"[{self.total_stages}/{self.total_stages}] Complete"

    def is_complete(self) -> bool:
        return self.current_stage >= self.total_stages


class BatchProgressReporter:
    """
    ``on_progress`` callback for BatchWindowRunner.

    With a known range it drives a click progress bar over the window
    positions; open-ended loops print one line per window instead.

    Example:
        >>> with BatchProgressReporter(start=0, end=5000) as reporter:
        ...     runner = BatchWindowRunner(fetch, end=5000,
        ...                                on_progress=reporter)
        ...     summary = runner.run()
    """

    def __init__(
        self, start: int = 0, end: Optional[int] = None, label: str = "Fetching"
    ):
        self.start = start
        self.end = end
        self.label = label
        self._bar = None
        self._position = start

    def __enter__(self) -> "BatchProgressReporter":
        if self.end is not None:
            self._bar = click.progressbar(
                length=self.end - self.start, label=self.label, show_pos=True
            )
            self._bar.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._bar is not None:
            self._bar.__exit__(exc_type, exc_val, exc_tb)
            self._bar = None
        return False

    def __call__(self, progress: BatchProgress) -> None:
        if self._bar is not None:
            self._bar.update(max(progress.position - self._position, 0))
            self._position = progress.position
            return

        window = f"{progress.skip}-{progress.position}"
        if progress.succeeded:
            click.echo(
                format_info(
                    f"Batch {progress.batch_number} ({window}): "
                    f"{progress.total_fetched} fetched, {progress.total_saved} saved"
                )
            )
        else:
            click.echo(
                format_error(
                    f"Batch {progress.batch_number} ({window}) failed: "
                    f"{progress.last_error}"
                )
            )
