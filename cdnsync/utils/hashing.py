"""
BLAKE3 content hashing for local files.
"""

import asyncio
from pathlib import Path

from blake3 import blake3

CHUNK_SIZE = 1048576  # 1 MB


def hash_file(path: Path) -> str:
    """Returns the lower-case hex BLAKE3 digest of a file's contents."""
    hasher = blake3()
    with open(path, "rb") as f:
        while chunk := f.read(CHUNK_SIZE):
            hasher.update(chunk)
    return hasher.hexdigest().lower()


async def hash_file_async(path: Path) -> str:
    """Hashes a file in a worker thread so the event loop is not blocked."""
    return await asyncio.to_thread(hash_file, path)
