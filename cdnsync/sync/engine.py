"""
The synchronization engine: diffs the manifest against the local directory and
downloads, verifies, and records every missing or outdated file.
"""

import logging
import os
import random
import string
import time
from collections.abc import Iterable
from pathlib import Path

from rich.markup import escape

from cdnsync.cdn.selector import ActiveHost
from cdnsync.cli.progress_manager import ProgressManager
from cdnsync.exceptions import IntegrityMismatchError, TransportFailureError
from cdnsync.models.stats import SyncStats
from cdnsync.storage.hash_cache import load_hashes, save_hashes
from cdnsync.utils.formatting import format_size
from cdnsync.utils.hashing import hash_file_async
from cdnsync.utils.path import create_dir, cute_path
from cdnsync.utils.structured_logger import SyncEventLogger

from .diff import DownloadTask, classify
from .downloader import Downloader
from .manifest import ManifestEntry, fetch_manifest, total_size
from .retry import FailureKind, RetryPolicy

log = logging.getLogger(__name__)

CACHE_BUSTER_LENGTH = 6


def cache_buster() -> str:
    """A random query string that makes intermediate caches miss."""
    return "".join(
        random.choices(string.ascii_letters + string.digits, k=CACHE_BUSTER_LENGTH)
    )


class SyncEngine:
    """
    Brings a local directory in line with the manifest of the active CDN host.

    Files are downloaded one at a time; a file only enters the hash cache after its
    downloaded content matched the manifest hash (or its suffix is exempt from the
    check).
    """

    def __init__(
        self,
        downloader: Downloader,
        retry_policy: RetryPolicy,
        progress_manager: ProgressManager | None = None,
        verify_exempt_suffixes: Iterable[str] = (".html",),
        executable_suffixes: Iterable[str] = (".exe",),
        events: SyncEventLogger | None = None,
    ):
        self.downloader = downloader
        self.retry_policy = retry_policy
        self.progress_manager = progress_manager
        self.verify_exempt_suffixes = tuple(s.lower() for s in verify_exempt_suffixes)
        self.executable_suffixes = tuple(s.lower() for s in executable_suffixes)
        self.events = events
        self.stats = SyncStats()

    def _is_exempt(self, path: Path) -> bool:
        return bool(self.verify_exempt_suffixes) and path.name.lower().endswith(
            self.verify_exempt_suffixes
        )

    def _mark_executable(self, path: Path) -> None:
        if os.name != "posix" or not self.executable_suffixes:
            return
        if not path.name.lower().endswith(self.executable_suffixes):
            return
        try:
            os.chmod(path, 0o755)
        except OSError as e:
            log.error(f"Error setting permissions for {path.name}: {e}")

    async def download_and_verify(
        self, task: DownloadTask, host: ActiveHost, hashes: dict[str, str]
    ) -> bool:
        """
        Downloads one file until it verifies, the policy gives up on a mismatch, or
        the policy gives up on a transport failure.

        Returns:
            True if the file was verified (or exempt) and recorded in `hashes`,
            False if it was skipped after a declined mismatch retry.

        Raises:
            TransportFailureError: If a transport failure was not retried.
        """
        entry = task.entry
        create_dir(task.destination.parent)

        failed_attempts = 0
        bust_cache = False
        while True:
            url = host.url_for(entry.name, cache_buster() if bust_cache else None)
            bust_cache = False

            task_id = None
            if self.progress_manager:
                task_id = self.progress_manager.add_file_task(
                    task.relative_path, total_size=entry.size
                )

            started = time.monotonic()
            try:
                written = await self.downloader.download_file(
                    url,
                    task.destination,
                    stats=self.stats,
                    progress_manager=self.progress_manager,
                    task_id=task_id,
                )
            except TransportFailureError as e:
                failed_attempts += 1
                if self.progress_manager:
                    self.progress_manager.remove_task(task_id, success=False)
                log.error(f"[red]✗ {escape(str(e))}[/red]")
                if self.events:
                    self.events.file_failed(
                        task.relative_path,
                        FailureKind.TRANSPORT.value,
                        str(e),
                        failed_attempts,
                    )
                if self.retry_policy.should_retry(
                    FailureKind.TRANSPORT, entry, failed_attempts
                ):
                    self.stats.retries += 1
                    log.warning(f"Retrying download of {task.relative_path}")
                    continue
                log.error(
                    f"Download for file {task.relative_path} failed, not retrying."
                )
                raise

            if self.progress_manager:
                self.progress_manager.remove_task(task_id, success=True)

            local_hash = await hash_file_async(task.destination)
            if local_hash != entry.blake3 and not self._is_exempt(task.destination):
                failed_attempts += 1
                # The destination now holds unverified bytes.
                hashes.pop(task.relative_path, None)
                mismatch = IntegrityMismatchError(
                    task.relative_path, entry.blake3, local_hash
                )
                log.error(f"[red]✗ {escape(str(mismatch))}[/red]")
                if self.events:
                    self.events.file_failed(
                        task.relative_path,
                        FailureKind.INTEGRITY.value,
                        str(mismatch),
                        failed_attempts,
                    )
                if self.retry_policy.should_retry(
                    FailureKind.INTEGRITY, entry, failed_attempts
                ):
                    self.stats.retries += 1
                    log.info(
                        f"Retrying download for {task.relative_path} due to hash "
                        "mismatch"
                    )
                    bust_cache = True
                    continue

                self.stats.files_skipped_mismatch += 1
                self.stats.skipped_paths.append(task.relative_path)
                log.warning(
                    f"[yellow]○ Skipping:[/yellow] {task.relative_path} "
                    "(left unverified)"
                )
                if self.events:
                    self.events.file_skipped(task.relative_path, "hash mismatch")
                return False

            hashes[task.relative_path] = local_hash
            self.stats.files_downloaded += 1
            self.stats.total_size_downloaded += written
            self._mark_executable(task.destination)
            if self.events:
                self.events.file_downloaded(
                    task.relative_path, written, time.monotonic() - started
                )
            return True

    async def sync_group(
        self,
        entries: list[ManifestEntry],
        group: str,
        local_dir: Path,
        hashes: dict[str, str],
        host: ActiveHost,
    ) -> None:
        """Classifies one directory group and downloads what is missing or stale."""
        label = group or "all files"
        classification = await classify(
            entries, group, local_dir, hashes, events=self.events
        )
        self.stats.files_checked += len(classification.up_to_date)

        if not classification.to_download:
            log.info(f"No files to download for {label}")
            self.stats.groups_synced.append(label)
            return

        pending_size = total_size(t.entry for t in classification.to_download)
        log.info(
            f"Downloading outdated or missing files for {label}, "
            f"{format_size(pending_size)}"
        )
        if self.progress_manager:
            self.progress_manager.add_to_total(len(classification.to_download))

        for task in classification.to_download:
            await self.download_and_verify(task, host, hashes)

        self.stats.groups_synced.append(label)

    async def run(
        self,
        host: ActiveHost,
        local_dir: Path,
        groups: list[str] | None = None,
        force: bool = False,
    ) -> SyncStats:
        """
        Synchronizes local_dir with the host's manifest.

        Args:
            host: The CDN host to fetch the manifest and files from.
            local_dir: Directory to synchronize.
            groups: Directory groups (manifest path prefixes) to sync, in order. An
                empty list syncs the whole manifest into local_dir.
            force: Ignore the stored hash cache and hash every present file.

        Raises:
            ManifestUnavailableError: If the manifest cannot be retrieved.
            TransportFailureError: If a download failed and was not retried.
        """
        log.info(f"Starting sync of '{cute_path(local_dir)}' from {host.base_url}")
        session = await self.downloader.get_session()
        entries = await fetch_manifest(session, host)

        create_dir(local_dir)
        hashes = {} if force else load_hashes(local_dir)
        if force:
            log.debug("Force enabled, ignoring stored hashes.")

        try:
            for group in groups or [""]:
                await self.sync_group(entries, group, local_dir, hashes, host)
        finally:
            save_hashes(local_dir, hashes)

        return self.stats
