"""Tests for the persisted hash cache."""

import json

from cdnsync.storage.hash_cache import (
    CACHE_FILE_NAME,
    CACHE_VERSION,
    load_hashes,
    save_hashes,
)

HASH_A = "a" * 64
HASH_B = "0123456789abcdef" * 4


class TestHashCache:
    def test_round_trip(self, tmp_path):
        hashes = {"a.exe": HASH_A, "data/b.ff": HASH_B}

        assert save_hashes(tmp_path, hashes)

        assert load_hashes(tmp_path) == hashes

    def test_missing_file_is_empty(self, tmp_path):
        assert load_hashes(tmp_path) == {}

    def test_corrupt_file_is_empty(self, tmp_path):
        (tmp_path / CACHE_FILE_NAME).write_text("{not json", encoding="utf-8")
        assert load_hashes(tmp_path) == {}

    def test_binary_garbage_is_empty(self, tmp_path):
        (tmp_path / CACHE_FILE_NAME).write_bytes(b"\xff\xfe\x00garbage")
        assert load_hashes(tmp_path) == {}

    def test_version_mismatch_is_empty(self, tmp_path):
        payload = {"version": CACHE_VERSION + 1, "hashes": {"a.exe": HASH_A}}
        (tmp_path / CACHE_FILE_NAME).write_text(json.dumps(payload), encoding="utf-8")
        assert load_hashes(tmp_path) == {}

    def test_wrong_shape_is_empty(self, tmp_path):
        cache_file = tmp_path / CACHE_FILE_NAME
        cache_file.write_text(json.dumps([HASH_A]), encoding="utf-8")
        assert load_hashes(tmp_path) == {}

        cache_file.write_text(
            json.dumps({"version": CACHE_VERSION, "hashes": [HASH_A]}),
            encoding="utf-8",
        )
        assert load_hashes(tmp_path) == {}

    def test_non_string_values_dropped(self, tmp_path):
        payload = {"version": CACHE_VERSION, "hashes": {"a.exe": HASH_A, "b": 5}}
        (tmp_path / CACHE_FILE_NAME).write_text(json.dumps(payload), encoding="utf-8")
        assert load_hashes(tmp_path) == {"a.exe": HASH_A}

    def test_hashes_are_lowercased(self, tmp_path):
        payload = {"version": CACHE_VERSION, "hashes": {"a.exe": HASH_A.upper()}}
        (tmp_path / CACHE_FILE_NAME).write_text(json.dumps(payload), encoding="utf-8")
        assert load_hashes(tmp_path) == {"a.exe": HASH_A}

    def test_save_replaces_previous_cache(self, tmp_path):
        save_hashes(tmp_path, {"old": HASH_A})
        save_hashes(tmp_path, {"new": HASH_B})

        assert load_hashes(tmp_path) == {"new": HASH_B}
        assert not (tmp_path / f"{CACHE_FILE_NAME}.tmp").exists()

    def test_save_creates_directory(self, tmp_path):
        target = tmp_path / "not" / "yet"
        assert save_hashes(target, {"a": HASH_A})
        assert load_hashes(target) == {"a": HASH_A}
