"""
A schema-versioned JSON cache of content hashes, stored alongside the synced files.

The cache only saves rehashing work. A missing, unreadable, or outdated cache
file loads as an empty map so every file gets hashed again.
"""

import json
import logging
import os
from pathlib import Path

log = logging.getLogger(__name__)

CACHE_FILE_NAME = ".cdn-sync-cache.json"
CACHE_VERSION = 1


def cache_path(directory: Path) -> Path:
    return directory / CACHE_FILE_NAME


def load_hashes(directory: Path) -> dict[str, str]:
    """
    Loads the relative-path -> hex-hash map for a directory.

    Never raises for a bad cache file; returns an empty map instead.
    """
    path = cache_path(directory)
    if not path.is_file():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
        log.warning(f"Hash cache at '{path}' is unreadable, rehashing files: {e}")
        return {}

    if not isinstance(data, dict) or data.get("version") != CACHE_VERSION:
        log.debug(f"Hash cache at '{path}' has an unknown schema, ignoring it.")
        return {}

    hashes = data.get("hashes")
    if not isinstance(hashes, dict):
        log.debug(f"Hash cache at '{path}' has no hash table, ignoring it.")
        return {}

    return {
        str(name): value.lower()
        for name, value in hashes.items()
        if isinstance(value, str)
    }


def save_hashes(directory: Path, hashes: dict[str, str]) -> bool:
    """
    Writes the hash map for a directory, replacing the previous cache atomically.

    Returns:
        True on success, False if the file could not be written.
    """
    path = cache_path(directory)
    tmp_path = path.with_name(f"{path.name}.tmp")
    payload = {"version": CACHE_VERSION, "hashes": dict(sorted(hashes.items()))}
    try:
        directory.mkdir(parents=True, exist_ok=True)
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        os.replace(tmp_path, path)
        log.debug(f"Saved {len(hashes)} hashes to '{path}'.")
        return True
    except OSError as e:
        log.warning(f"Hash cache write failed for '{path}': {e}")
        return False
