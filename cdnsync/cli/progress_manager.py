"""
Manages a Rich progress display for sequential file downloads.
"""

import asyncio
import logging
from collections.abc import Iterator
from contextlib import contextmanager

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

log = logging.getLogger(__name__)


class ProgressManager:
    """
    Shows one bar per file being downloaded and an overall file counter.

    Use as an async context manager; the display is stopped on exit.
    """

    def __init__(self, console: Console, enabled: bool = True):
        self.console = console
        self.enabled = enabled

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            BarColumn(bar_width=30),
            "[progress.percentage]{task.percentage:>3.0f}%",
            "•",
            DownloadColumn(),
            "•",
            TransferSpeedColumn(),
            "•",
            TimeRemainingColumn(),
            console=console,
            transient=True,
        )
        self._overall_task_id: TaskID | None = None
        self._stats = {"total_files": 0, "completed": 0, "failed": 0}
        self._started = False

    def add_to_total(self, count: int) -> None:
        self._stats["total_files"] += count
        if not self.enabled:
            return
        if self._overall_task_id is None:
            self._overall_task_id = self.progress.add_task(
                "[bold blue]Files[/bold blue]",
                total=self._stats["total_files"],
            )
        else:
            self.progress.update(
                self._overall_task_id, total=self._stats["total_files"]
            )

    def add_file_task(self, description: str, total_size: int) -> TaskID | None:
        if not self.enabled:
            return None
        if len(description) > 50:
            description = "…" + description[-49:]
        return self.progress.add_task(description, total=total_size or None)

    def update_task_progress(self, task_id: TaskID | None, completed: int) -> None:
        if task_id is not None and self.enabled:
            self.progress.update(task_id, completed=completed)

    def remove_task(self, task_id: TaskID | None, success: bool = True) -> None:
        if success:
            self._stats["completed"] += 1
        else:
            self._stats["failed"] += 1
        if task_id is None or not self.enabled:
            return
        try:
            self.progress.remove_task(task_id)
        except KeyError:
            pass
        if self._overall_task_id is None:
            return
        if success:
            self.progress.advance(self._overall_task_id)
        else:
            self.progress.update(
                self._overall_task_id,
                description=(
                    f"[bold blue]Files[/bold blue] [red]({self._stats['failed']}"
                    " failed attempts)[/red]"
                ),
            )

    @contextmanager
    def paused(self) -> Iterator[None]:
        """Temporarily stops the live display, e.g. while prompting the operator."""
        if not (self.enabled and self._started):
            yield
            return
        self.progress.stop()
        try:
            yield
        finally:
            self.progress.start()

    async def __aenter__(self):
        if self.enabled:
            self.progress.start()
            self._started = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._started:
            await asyncio.sleep(0.1)
            self.progress.stop()
            self._started = False
