from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.status import Status

WAITING = "Waiting for job to complete..."
DOWNLOADING = "Downloading result..."


@contextmanager
def spinner(console: Console, message: str) -> Iterator[Status]:
    with console.status(message, spinner="dots", spinner_style="cyan") as status:
        yield status


class BatchProgress:
    """Progress bar fed with the bulk job's running completed count."""

    def __init__(self, console: Console, total: int, message: str = "Capturing screenshots", enabled: bool = True):
        self.total = total
        self.enabled = enabled
        self._progress: Optional[Progress] = None
        self._task_id = None
        self._started = False
        if enabled:
            self._progress = Progress(
                SpinnerColumn(style="cyan"),
                TextColumn("{task.description}"),
                BarColumn(complete_style="cyan", finished_style="green"),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                console=console,
                transient=False,
            )
            self._task_id = self._progress.add_task(message, total=total)

    def start(self) -> None:
        if self._progress is not None and not self._started:
            self._progress.start()
            self._started = True

    def stop(self) -> None:
        if self._progress is not None and self._started:
            self._progress.stop()
            self._started = False

    def update(self, completed: int) -> None:
        if self._progress is not None:
            self._progress.update(self._task_id, completed=min(completed, self.total))

    def finish(self, message: str) -> None:
        if self._progress is not None:
            self._progress.update(self._task_id, description=message)
