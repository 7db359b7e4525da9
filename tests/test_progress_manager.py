"""Tests for the live progress display."""

import pytest
from rich.console import Console

from cdnsync.cli.progress_manager import ProgressManager


class TestProgressManager:
    @pytest.mark.asyncio
    async def test_disabled_manager_never_starts_display(self):
        manager = ProgressManager(Console(quiet=True), enabled=False)

        async with manager:
            manager.add_to_total(2)
            task_id = manager.add_file_task("engine/a.exe", total_size=10)
            manager.update_task_progress(task_id, completed=5)
            manager.remove_task(task_id, success=False)
            with manager.paused():
                pass

            assert task_id is None
            assert not manager.progress.live.is_started
            assert manager.progress.tasks == []

    @pytest.mark.asyncio
    async def test_enabled_manager_tracks_files(self):
        manager = ProgressManager(Console(quiet=True))

        async with manager:
            manager.add_to_total(1)
            task_id = manager.add_file_task("engine/a.exe", total_size=10)
            manager.update_task_progress(task_id, completed=10)
            manager.remove_task(task_id, success=True)

            (overall,) = manager.progress.tasks
            assert overall.completed == 1
            assert overall.total == 1
