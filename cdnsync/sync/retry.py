"""
Retry decisions for failed or corrupt downloads.

The sync engine never talks to the terminal itself; it asks a RetryPolicy.
"""

import logging
from enum import Enum
from typing import Protocol

import typer

from cdnsync.cli.progress_manager import ProgressManager

from .manifest import ManifestEntry

log = logging.getLogger(__name__)


class FailureKind(Enum):
    """Why a download attempt did not produce a verified file."""

    TRANSPORT = "transport"  # Stream error, fatal if not retried
    INTEGRITY = "integrity"  # Hash mismatch, file skipped if not retried


class RetryPolicy(Protocol):
    def should_retry(
        self, kind: FailureKind, entry: ManifestEntry, attempt: int
    ) -> bool:
        """
        Args:
            kind: The failure that just happened.
            entry: The manifest entry being downloaded.
            attempt: How many attempts at this file have failed so far (>= 1).
        """
        ...


class AutomaticRetryPolicy:
    """Retries each file up to max_retries times, then gives up."""

    def __init__(self, max_retries: int = 3):
        self.max_retries = max_retries

    def should_retry(
        self, kind: FailureKind, entry: ManifestEntry, attempt: int
    ) -> bool:
        retry = attempt <= self.max_retries
        log.debug(
            f"{kind.value} failure #{attempt} for {entry.name}: "
            f"{'retrying' if retry else 'giving up'}"
        )
        return retry


class InteractiveRetryPolicy:
    """Asks the operator whether to retry, defaulting to yes."""

    def __init__(self, progress_manager: ProgressManager | None = None):
        self.progress_manager = progress_manager

    def should_retry(
        self, kind: FailureKind, entry: ManifestEntry, attempt: int
    ) -> bool:
        if kind is FailureKind.TRANSPORT:
            question = f"Failed to download file {entry.name}, retry?"
        else:
            question = (
                f"Downloaded file {entry.name} does not match the published hash. "
                "If this issue persists please try again in 15 minutes. Retry?"
            )

        if self.progress_manager:
            with self.progress_manager.paused():
                return typer.confirm(question, default=True)
        return typer.confirm(question, default=True)
