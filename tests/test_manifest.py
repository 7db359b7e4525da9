"""Tests for manifest parsing and fetching."""

import aiohttp
import pytest

from cdnsync.exceptions import ManifestUnavailableError
from cdnsync.sync.manifest import (
    ManifestEntry,
    destination_for,
    fetch_manifest,
    group_entries,
    parse_manifest,
    total_size,
)

HASH = "ab" * 32


def _entry(name: str, size: int = 1) -> ManifestEntry:
    return ManifestEntry(name=name, size=size, blake3=HASH)


class TestParseManifest:
    def test_valid(self):
        entries = parse_manifest(
            [{"name": "engine/a.exe", "size": 10, "blake3": HASH.upper()}]
        )
        assert entries == [ManifestEntry(name="engine/a.exe", size=10, blake3=HASH)]

    def test_hash_is_normalized(self):
        assert _entry("a").blake3 == HASH
        entry = ManifestEntry(name="a", size=0, blake3=f" {HASH.upper()} ")
        assert entry.blake3 == HASH

    @pytest.mark.parametrize(
        "data",
        [
            {"name": "a"},
            [{"name": "a", "size": 1}],
            [{"name": "a", "size": -1, "blake3": HASH}],
            [{"name": "a", "size": 1, "blake3": "xyz"}],
            [{"name": "", "size": 1, "blake3": HASH}],
        ],
    )
    def test_invalid(self, data):
        with pytest.raises(ManifestUnavailableError):
            parse_manifest(data)


class TestGroups:
    def test_group_entries_strip_prefix(self):
        entries = [_entry("engine/a.exe"), _entry("bonus/b.ff"), _entry("engine/x/c")]
        pairs = group_entries(entries, "engine")
        assert [rel for _, rel in pairs] == ["a.exe", "x/c"]

    def test_group_prefix_must_be_a_directory(self):
        entries = [_entry("engine/a.exe"), _entry("engine2/b.exe")]
        assert [rel for _, rel in group_entries(entries, "engine")] == ["a.exe"]

    def test_empty_group_is_whole_manifest(self):
        entries = [_entry("engine/a.exe"), _entry("root.txt")]
        assert [rel for _, rel in group_entries(entries, "")] == [
            "engine/a.exe",
            "root.txt",
        ]

    def test_total_size(self):
        assert total_size([_entry("a", 3), _entry("b", 4)]) == 7

    @pytest.mark.parametrize("name", ["../escape.exe", "/etc/passwd", "a/../../b"])
    def test_unsafe_destination(self, tmp_path, name):
        with pytest.raises(ManifestUnavailableError):
            destination_for(tmp_path, name)

    def test_nested_destination(self, tmp_path):
        assert destination_for(tmp_path, "x/y/z.bin") == tmp_path / "x" / "y" / "z.bin"


class TestFetchManifest:
    @pytest.mark.asyncio
    async def test_fetch(self, fake_cdn):
        cdn = fake_cdn({"engine/a.exe": b"\x00" * 10})
        async with cdn.serve() as host, aiohttp.ClientSession() as session:
            entries = await fetch_manifest(session, host)

        assert [e.name for e in entries] == ["engine/a.exe"]
        assert entries[0].size == 10

    @pytest.mark.asyncio
    async def test_http_error(self, fake_cdn):
        cdn = fake_cdn({}, manifest_status=503)
        async with cdn.serve() as host, aiohttp.ClientSession() as session:
            with pytest.raises(ManifestUnavailableError):
                await fetch_manifest(session, host)

    @pytest.mark.asyncio
    async def test_bad_schema(self, fake_cdn):
        cdn = fake_cdn({}, manifest=[{"file": "a"}])
        async with cdn.serve() as host, aiohttp.ClientSession() as session:
            with pytest.raises(ManifestUnavailableError):
                await fetch_manifest(session, host)
