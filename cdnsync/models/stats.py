"""
Dataclass for tracking sync session statistics.
"""

import asyncio
import time
from dataclasses import dataclass, field


@dataclass
class SyncStats:
    """Tracks statistics for a sync session, including real-time speed."""

    files_checked: int = 0
    files_downloaded: int = 0
    files_skipped_mismatch: int = 0
    retries: int = 0
    total_size_downloaded: int = 0
    groups_synced: list[str] = field(default_factory=list)
    skipped_paths: list[str] = field(default_factory=list)

    current_speed_bps: float = 0.0
    peak_speed_bps: float = 0.0
    _speed_samples: list[float] = field(default_factory=list, repr=False)
    _last_progress_time: float = field(default=0.0, repr=False)
    _last_progress_bytes: int = field(default=0, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def __post_init__(self):
        self._last_progress_time = time.monotonic()

    @property
    def is_complete(self) -> bool:
        """True when no file was left unverified."""
        return self.files_skipped_mismatch == 0

    async def update_speed_stats(self, total_bytes_so_far: int) -> None:
        """
        Updates the download speed based on progress.

        Args:
            total_bytes_so_far: The cumulative total of bytes downloaded in the session.
        """
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_progress_time

            # Update speed roughly twice per second
            if elapsed > 0.5:
                bytes_diff = total_bytes_so_far - self._last_progress_bytes
                if bytes_diff > 0:
                    self._speed_samples.append(bytes_diff / elapsed)
                    # Sliding window of the last 10 samples
                    if len(self._speed_samples) > 10:
                        self._speed_samples.pop(0)
                    self.current_speed_bps = sum(self._speed_samples) / len(
                        self._speed_samples
                    )
                    self.peak_speed_bps = max(
                        self.peak_speed_bps, self.current_speed_bps
                    )

                self._last_progress_time = now
                self._last_progress_bytes = total_bytes_so_far
