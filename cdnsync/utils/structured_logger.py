"""
Structured logging system for better log analysis and debugging.
Writes JSON-lines events for host ratings and file synchronization.
"""

import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any


class StructuredLogger:
    """
    Logger that outputs both human-readable and machine-parseable logs.

    Usage:
        logger = StructuredLogger("cdnsync", log_dir=Path("logs"))
        logger.info("file_downloaded", path="a.exe", size_bytes=10)
    """

    def __init__(
        self,
        name: str,
        log_dir: Path | None = None,
        enable_json: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            log_dir: Directory for JSON log files (None = disabled)
            enable_json: Enable JSON file logging
            enable_console: Mirror events to the standard logger at their level
        """
        self.name = name
        self.log_dir = log_dir
        self.enable_json = enable_json and log_dir is not None
        self.enable_console = enable_console

        self._logger = logging.getLogger(name)

        self._json_file = None
        if self.enable_json:
            log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            json_log_path = log_dir / f"cdn_sync_{timestamp}.jsonl"
            self._json_file = open(json_log_path, "a", encoding="utf-8")  # noqa: SIM115

        self._session_context: dict[str, Any] = {
            "session_id": f"{int(time.time())}_{id(self)}",
            "start_time": datetime.now().isoformat(),
        }

    def set_session_context(self, **kwargs) -> None:
        """Set session-level context that appears in all logs."""
        self._session_context.update(kwargs)

    def _format_message(self, event: str, **context) -> str:
        parts = [f"[{event}]"]
        for key, value in context.items():
            parts.append(f"{key}={value}")
        return " ".join(parts)

    def _write_json(self, level: str, event: str, **context) -> None:
        if not self._json_file or self._json_file.closed:
            return

        entry = {
            "timestamp": datetime.now().isoformat(),
            "level": level,
            "event": event,
            **self._session_context,
            **context,
        }

        try:
            self._json_file.write(json.dumps(entry, default=str) + "\n")
            self._json_file.flush()
        except (OSError, TypeError, ValueError) as e:
            print(f"JSON logging failed: {e}", file=sys.stderr)

    def debug(self, event: str, **context) -> None:
        if self.enable_console:
            self._logger.debug(self._format_message(event, **context))
        self._write_json("DEBUG", event, **context)

    def info(self, event: str, **context) -> None:
        if self.enable_console:
            self._logger.info(self._format_message(event, **context))
        self._write_json("INFO", event, **context)

    def warning(self, event: str, **context) -> None:
        if self.enable_console:
            self._logger.warning(self._format_message(event, **context))
        self._write_json("WARNING", event, **context)

    def error(self, event: str, **context) -> None:
        if self.enable_console:
            self._logger.error(self._format_message(event, **context))
        self._write_json("ERROR", event, **context)

    def close(self) -> None:
        """Close JSON log file."""
        if self._json_file and not self._json_file.closed:
            self._json_file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class SyncEventLogger:
    """Specialized logger for rating and synchronization events."""

    def __init__(self, logger: StructuredLogger | None = None):
        self.logger = logger or StructuredLogger(
            "cdnsync.events", enable_json=False, enable_console=False
        )

    def host_rated(
        self, address: str, score: int, latency_ms: int | None, edge_network: str | None
    ):
        self.logger.info(
            "host_rated",
            address=address,
            score=score,
            latency_ms=latency_ms,
            edge_network=edge_network,
        )

    def host_unreachable(self, address: str, error: str):
        self.logger.warning("host_unreachable", address=address, error=error)

    def host_selected(self, url: str, score: int):
        self.logger.info("host_selected", url=url, score=score)

    def file_checked(self, path: str):
        self.logger.debug("file_checked", path=path)

    def file_downloaded(self, path: str, size_bytes: int, duration_s: float):
        self.logger.info(
            "file_downloaded",
            path=path,
            size_bytes=size_bytes,
            duration_s=round(duration_s, 2),
        )

    def file_failed(self, path: str, kind: str, error: str, attempt: int):
        self.logger.error(
            "file_failed", path=path, kind=kind, error=error, attempt=attempt
        )

    def file_skipped(self, path: str, reason: str):
        self.logger.warning("file_skipped", path=path, reason=reason)

    def close(self) -> None:
        self.logger.close()


def create_event_logger(
    log_dir: Path | None = None, enable_console: bool = False
) -> SyncEventLogger:
    """
    Creates the event logger, writing JSON lines only when log_dir is given.

    Console mirroring is off unless requested.
    """
    base = StructuredLogger(
        "cdnsync.events",
        log_dir=log_dir,
        enable_json=True,
        enable_console=enable_console,
    )
    return SyncEventLogger(base)
