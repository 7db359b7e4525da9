"""
File Synchronization Layer.

This package fetches the manifest, decides what is stale, and downloads and
verifies files against their published hashes.
"""

from .diff import Classification, DownloadTask, classify
from .downloader import Downloader
from .engine import SyncEngine
from .manifest import ManifestEntry, fetch_manifest, group_entries
from .retry import AutomaticRetryPolicy, FailureKind, InteractiveRetryPolicy, RetryPolicy

__all__ = [
    "AutomaticRetryPolicy",
    "Classification",
    "DownloadTask",
    "Downloader",
    "FailureKind",
    "InteractiveRetryPolicy",
    "ManifestEntry",
    "RetryPolicy",
    "SyncEngine",
    "classify",
    "fetch_manifest",
    "group_entries",
]
