"""
Fetches and parses the CDN's published file manifest.
"""

import asyncio
import json
import logging
from collections.abc import Iterable
from pathlib import Path

import aiohttp
from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

from cdnsync.cdn.selector import ActiveHost
from cdnsync.exceptions import ManifestUnavailableError
from cdnsync.utils.path import resolve_destination

log = logging.getLogger(__name__)

MANIFEST_NAME = "files.json"
MANIFEST_TIMEOUT = aiohttp.ClientTimeout(total=60, sock_connect=15, sock_read=30)


class ManifestEntry(BaseModel):
    """One published file: its path on the CDN, size in bytes, and BLAKE3 hash."""

    name: str
    size: int = Field(ge=0)
    blake3: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip("/"):
            raise ValueError("Manifest entry name cannot be empty.")
        return v

    @field_validator("blake3")
    @classmethod
    def validate_hash(cls, v: str) -> str:
        """Normalizes the hash to lower-case hex."""
        v = v.strip().lower()
        if len(v) != 64 or any(c not in "0123456789abcdef" for c in v):
            raise ValueError(f"Not a 256-bit hex digest: {v!r}")
        return v


_manifest_adapter = TypeAdapter(list[ManifestEntry])


def parse_manifest(data: object) -> list[ManifestEntry]:
    try:
        return _manifest_adapter.validate_python(data)
    except ValidationError as e:
        raise ManifestUnavailableError(f"Manifest has an invalid format: {e}") from e


async def fetch_manifest(
    session: aiohttp.ClientSession, host: ActiveHost
) -> list[ManifestEntry]:
    """
    Downloads and validates the manifest from the active host.

    Raises:
        ManifestUnavailableError: On any transport, HTTP, JSON, or schema failure.
    """
    url = host.url_for(MANIFEST_NAME)
    try:
        async with session.get(url, timeout=MANIFEST_TIMEOUT) as response:
            response.raise_for_status()
            body = await response.text()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise ManifestUnavailableError(f"Could not fetch {url}: {e}") from e

    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise ManifestUnavailableError(f"Manifest at {url} is not valid JSON: {e}") from e

    entries = parse_manifest(data)
    log.debug(f"Retrieved {MANIFEST_NAME} with {len(entries)} entries from {url}")
    return entries


def group_prefix(group: str) -> str:
    group = group.strip("/")
    return f"{group}/" if group else ""


def group_entries(
    entries: list[ManifestEntry], group: str
) -> list[tuple[ManifestEntry, str]]:
    """
    Selects the entries under a directory group.

    Returns:
        (entry, relative path) pairs, where the relative path has the group prefix
        removed. An empty group selects the whole manifest.
    """
    prefix = group_prefix(group)
    return [
        (entry, entry.name.removeprefix(prefix))
        for entry in entries
        if entry.name.startswith(prefix)
    ]


def destination_for(local_dir: Path, relative_path: str) -> Path:
    """
    Resolves where a manifest file lands locally.

    Raises:
        ManifestUnavailableError: If the manifest names a path outside local_dir.
    """
    try:
        return resolve_destination(local_dir, relative_path)
    except ValueError as e:
        raise ManifestUnavailableError(str(e)) from e


def total_size(entries: Iterable[ManifestEntry]) -> int:
    return sum(entry.size for entry in entries)
