"""Tests for retry policies."""

import pytest
from rich.console import Console

from cdnsync.cli.progress_manager import ProgressManager
from cdnsync.sync import retry
from cdnsync.sync.manifest import ManifestEntry
from cdnsync.sync.retry import AutomaticRetryPolicy, FailureKind, InteractiveRetryPolicy

ENTRY = ManifestEntry(name="engine/a.exe", size=1, blake3="ab" * 32)


class TestAutomaticRetryPolicy:
    @pytest.mark.parametrize("kind", list(FailureKind))
    def test_retries_until_limit(self, kind):
        policy = AutomaticRetryPolicy(max_retries=2)

        assert policy.should_retry(kind, ENTRY, 1)
        assert policy.should_retry(kind, ENTRY, 2)
        assert not policy.should_retry(kind, ENTRY, 3)

    def test_zero_retries(self):
        assert not AutomaticRetryPolicy(0).should_retry(
            FailureKind.INTEGRITY, ENTRY, 1
        )


class TestInteractiveRetryPolicy:
    def test_asks_with_default_yes(self, monkeypatch):
        asked = []

        def fake_confirm(question, default):
            asked.append((question, default))
            return False

        monkeypatch.setattr(retry.typer, "confirm", fake_confirm)

        assert not InteractiveRetryPolicy().should_retry(
            FailureKind.TRANSPORT, ENTRY, 1
        )
        assert asked == [("Failed to download file engine/a.exe, retry?", True)]

    def test_mismatch_question(self, monkeypatch):
        asked = []
        monkeypatch.setattr(
            retry.typer, "confirm", lambda q, default: asked.append(q) or True
        )

        assert InteractiveRetryPolicy().should_retry(FailureKind.INTEGRITY, ENTRY, 1)
        assert "does not match" in asked[0]

    @pytest.mark.asyncio
    async def test_pauses_live_progress(self, monkeypatch):
        states = []
        manager = ProgressManager(Console(quiet=True))

        def fake_confirm(question, default):
            states.append(manager.progress.live.is_started)
            return True

        monkeypatch.setattr(retry.typer, "confirm", fake_confirm)

        async with manager:
            InteractiveRetryPolicy(manager).should_retry(
                FailureKind.TRANSPORT, ENTRY, 1
            )
            assert manager.progress.live.is_started

        assert states == [False]
