"""
Decides which manifest files are already present and which need downloading.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from cdnsync.utils.hashing import hash_file_async
from cdnsync.utils.structured_logger import SyncEventLogger

from .manifest import ManifestEntry, destination_for, group_entries

log = logging.getLogger(__name__)


@dataclass
class DownloadTask:
    """A file that has to be fetched, and where it goes."""

    entry: ManifestEntry
    relative_path: str
    destination: Path


@dataclass
class Classification:
    up_to_date: list[ManifestEntry] = field(default_factory=list)
    to_download: list[DownloadTask] = field(default_factory=list)


async def classify(
    entries: list[ManifestEntry],
    group: str,
    local_dir: Path,
    hashes: dict[str, str],
    events: SyncEventLogger | None = None,
) -> Classification:
    """
    Splits a directory group into up-to-date files and files to download.

    A missing destination is queued without hashing. For present files the cached
    hash is trusted if there is one, otherwise the file is hashed. Matching files
    have their hash recorded in `hashes`.
    """
    result = Classification()

    for entry, relative_path in group_entries(entries, group):
        destination = destination_for(local_dir, relative_path)

        if not destination.is_file():
            result.to_download.append(DownloadTask(entry, relative_path, destination))
            continue

        local_hash = hashes.get(relative_path)
        if local_hash is None:
            local_hash = await hash_file_async(destination)

        if local_hash.lower() != entry.blake3:
            log.debug(f"Outdated: {relative_path}")
            result.to_download.append(DownloadTask(entry, relative_path, destination))
        else:
            log.info(f"[blue]Checked[/blue]     {relative_path}")
            hashes[relative_path] = entry.blake3
            result.up_to_date.append(entry)
            if events:
                events.file_checked(relative_path)

    return result
