"""
Structured logging system for better log analysis and debugging.
Writes machine-parseable JSONL events alongside the human-readable console log.
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
    Logger that outputs machine-parseable events, optionally mirrored to a
    standard logger.

    Usage:
        logger = StructuredLogger("accuripper", log_dir=Path("logs"))
        logger.info("tracks_saved", channel_id="5a1b", count=12)
    """

    def __init__(
        self,
        name: str,
        log_dir: Path | None = None,
        enable_json: bool = True,
        enable_console: bool = False,
    ):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            log_dir: Directory for JSON log files (None = disabled)
            enable_json: Enable JSON file logging
            enable_console: Mirror events to the standard logger of the same name
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
            json_log_path = log_dir / f"accuripper_{timestamp}.jsonl"
            self._json_file = open(json_log_path, "a", encoding="utf-8")  # noqa: SIM115

        # Session context (added to all log entries)
        self._session_context: dict[str, Any] = {
            "session_id": f"{int(time.time())}_{id(self)}",
            "start_time": datetime.now().isoformat(),
        }

    @property
    def json_path(self) -> Path | None:
        return Path(self._json_file.name) if self._json_file else None

    def set_session_context(self, **kwargs) -> None:
        """Set session-level context that appears in all logs."""
        self._session_context.update(kwargs)

    def _format_message(self, event: str, **context) -> str:
        parts = [f"[{event}]"]
        parts.extend(f"{key}={value}" for key, value in context.items())
        return " ".join(parts)

    def _write_json(self, level: str, event: str, **context) -> None:
        """Write structured log entry to JSON file."""
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
        except (OSError, ValueError) as e:
            print(f"JSON logging failed: {e}", file=sys.stderr)

    def _emit(self, level: int, event: str, **context) -> None:
        if self.enable_console:
            self._logger.log(level, self._format_message(event, **context))
        if self.enable_json:
            self._write_json(logging.getLevelName(level), event, **context)

    def debug(self, event: str, **context) -> None:
        self._emit(logging.DEBUG, event, **context)

    def info(self, event: str, **context) -> None:
        self._emit(logging.INFO, event, **context)

    def warning(self, event: str, **context) -> None:
        self._emit(logging.WARNING, event, **context)

    def error(self, event: str, **context) -> None:
        self._emit(logging.ERROR, event, **context)

    def close(self) -> None:
        """Close JSON log file."""
        if self._json_file and not self._json_file.closed:
            self._json_file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class IngestLogger:
    """Specialized logger for channel discovery and polling events."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def channels_discovered(self, category_url: str, count: int):
        self.logger.info("channels_discovered", category_url=category_url, count=count)

    def poll_started(self, channel_id: str, channel_name: str):
        self.logger.debug("channel_poll_started", channel_id=channel_id, channel_name=channel_name)

    def fetch_failed(self, channel_id: str, error: str, stall_count: int):
        self.logger.warning(
            "channel_fetch_failed",
            channel_id=channel_id,
            error=error,
            stall_count=stall_count,
        )

    def tracks_saved(self, channel_id: str, count: int):
        self.logger.info("tracks_saved", channel_id=channel_id, count=count)

    def persist_failed(self, channel_id: str, dropped: int, error: str):
        self.logger.error(
            "tracks_persist_failed", channel_id=channel_id, dropped=dropped, error=error
        )

    def poll_finished(self, channel_id: str, exhausted: bool, evaluations: int, tracks_found: int):
        self.logger.info(
            "channel_exhausted" if exhausted else "channel_stopped",
            channel_id=channel_id,
            evaluations=evaluations,
            tracks_found=tracks_found,
        )


class DownloadLogger:
    """Specialized logger for download events."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def track_downloaded(self, path: str, size_bytes: int, link: str, fallback: bool):
        self.logger.info(
            "track_downloaded",
            path=path,
            size_bytes=size_bytes,
            size_mb=round(size_bytes / (1024 * 1024), 2),
            link=link,
            fallback=fallback,
        )

    def track_skipped(self, path: str):
        self.logger.debug("track_skipped", path=path, reason_code="exists")

    def track_failed(self, path: str, error: str):
        self.logger.error("track_download_failed", path=path, error=error)


def create_structured_logger(
    log_dir: Path | None = None, enable_json: bool = False
) -> tuple[StructuredLogger, IngestLogger, DownloadLogger]:
    """
    Create all structured loggers.

    Returns:
        Tuple of (base_logger, ingest_logger, download_logger)
    """
    base = StructuredLogger("accuripper.events", log_dir=log_dir, enable_json=enable_json)
    return base, IngestLogger(base), DownloadLogger(base)
