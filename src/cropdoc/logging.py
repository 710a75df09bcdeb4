"""Structured JSON logging for the offline media queue.

Provides audit-friendly logging with contextual fields for queue and sync
events. Media payloads and voice notes are never written to logs.

Usage:
    from cropdoc.logging import setup_logging, get_logger

    setup_logging("INFO")
    log = get_logger("cropdoc.sync")
    log.info("sync_started", extra={"unsynced": 3})
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from functools import lru_cache
from logging.handlers import RotatingFileHandler
from pathlib import Path

from pythonjsonlogger import jsonlogger

from cropdoc import __version__


class CropdocJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that adds standard context to all log records."""

    def add_fields(
        self,
        log_record: dict,
        record: logging.LogRecord,
        message_dict: dict,
    ) -> None:
        """Add standard fields to every log record."""
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["version"] = __version__

        if "message" not in log_record and record.getMessage():
            log_record["message"] = record.getMessage()

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        """Format time as ISO 8601."""
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return dt.isoformat()


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
    max_bytes: int = 5_000_000,  # 5MB
    backup_count: int = 3,
) -> None:
    """Configure root logger with JSON formatting.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path for rotating file handler
        max_bytes: Max size per log file for rotation
        backup_count: Number of backup files to keep
    """
    formatter = CropdocJsonFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # JSON to stderr so stdout stays clean for CLI output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file).expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


@lru_cache(maxsize=32)
def get_logger(name: str) -> logging.Logger:
    """Get a named logger.

    Args:
        name: Logger name (e.g., 'cropdoc.queue', 'cropdoc.sync')

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def queue_logger() -> logging.Logger:
    """Get logger for queue storage events."""
    return get_logger("cropdoc.queue")


def sync_logger() -> logging.Logger:
    """Get logger for sync pass events."""
    return get_logger("cropdoc.sync")


# --- Audit Event Functions ---


def log_record_enqueued(
    logger: logging.Logger,
    record_id: str,
    media_kind: str,
    content_source: str | None,
) -> None:
    """Log a record saved for later processing.

    Args:
        logger: Logger instance
        record_id: Queue record identifier
        media_kind: "image" or "video"
        content_source: "inline", "file" or None when the record has no content
    """
    logger.info(
        "Pending media saved",
        extra={
            "event": "record_enqueued",
            "record_id": record_id,
            "media_kind": media_kind,
            "content_source": content_source,
        },
    )


def log_record_skipped(
    logger: logging.Logger,
    position: int,
    error: str,
) -> None:
    """Log a stored entry that could not be decoded.

    Args:
        logger: Logger instance
        position: Index of the entry in the stored list
        error: Decode error message
    """
    logger.warning(
        "Skipping malformed queue entry",
        extra={
            "event": "record_skipped",
            "position": position,
            "error": error,
        },
    )


def log_sync_item_failed(
    logger: logging.Logger,
    record_id: str,
    error: str,
) -> None:
    """Log a record that failed during a sync pass.

    Args:
        logger: Logger instance
        record_id: Queue record identifier
        error: Error message (sanitized, no media content)
    """
    logger.warning(
        "Failed to sync record",
        extra={
            "event": "sync_item_failed",
            "record_id": record_id,
            "error": error,
        },
    )


def log_sync_finished(
    logger: logging.Logger,
    success: int,
    failed: int,
    duration_ms: float,
) -> None:
    """Log the outcome of a sync pass.

    Args:
        logger: Logger instance
        success: Number of records synced
        failed: Number of records that failed
        duration_ms: Wall time of the pass in milliseconds
    """
    logger.info(
        "Sync pass finished",
        extra={
            "event": "sync_finished",
            "success": success,
            "failed": failed,
            "duration_ms": duration_ms,
        },
    )
