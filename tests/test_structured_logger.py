"""Tests for the JSON-lines event log."""

import json
import logging

from cdnsync.utils.structured_logger import create_event_logger


class TestSyncEventLogger:
    def test_writes_json_lines(self, tmp_path):
        events = create_event_logger(tmp_path / "logs")
        events.logger.set_session_context(directory="/games/iw4x")
        events.host_rated("cdn.example", 240, 12, "cloudflare")
        events.file_downloaded("a.exe", 10, 0.123)
        events.close()

        (log_file,) = (tmp_path / "logs").glob("cdn_sync_*.jsonl")
        lines = [json.loads(line) for line in log_file.read_text().splitlines()]

        assert [line["event"] for line in lines] == ["host_rated", "file_downloaded"]
        assert lines[0]["score"] == 240
        assert lines[1]["duration_s"] == 0.12
        assert all(line["directory"] == "/games/iw4x" for line in lines)

    def test_no_log_dir_writes_nothing(self, tmp_path):
        events = create_event_logger(None)
        events.file_skipped("a.exe", "hash mismatch")
        events.close()

        assert list(tmp_path.iterdir()) == []

    def test_console_mirror_uses_event_level(self, caplog):
        events = create_event_logger(None, enable_console=True)

        with caplog.at_level(logging.DEBUG, logger="cdnsync.events"):
            events.host_selected("https://cdn.example", 240)
            events.host_unreachable("down.example", "timed out")
            events.file_failed("a.exe", "integrity", "hash mismatch", 1)

        assert [r.levelno for r in caplog.records] == [
            logging.INFO,
            logging.WARNING,
            logging.ERROR,
        ]
        assert caplog.records[1].getMessage().startswith("[host_unreachable]")

    def test_console_mirror_off_by_default(self, caplog):
        events = create_event_logger(None)

        with caplog.at_level(logging.DEBUG, logger="cdnsync.events"):
            events.file_skipped("a.exe", "hash mismatch")

        assert caplog.records == []
