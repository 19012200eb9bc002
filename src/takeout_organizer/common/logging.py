"""Logging setup for organizer runs.

Console output is plain text; the optional log file gets one JSON object
per line. Fields bound with LogContext (run id, phase) are attached to every
record created while the context is open, including records from worker
threads.
"""

import json
import logging
import logging.handlers
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

CONSOLE_FORMATS = {
    "simple": logging.Formatter("%(levelname)-8s | %(name)s | %(message)s"),
    "detailed": logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(threadName)s | "
        "%(name)s:%(funcName)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ),
}

_context: Dict[str, Any] = {}
_context_lock = threading.Lock()
_base_factory = None


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, with any bound context fields merged in."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
            "message": record.getMessage(),
        }
        entry.update(getattr(record, "context", {}))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


def _context_record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
    record = _base_factory(*args, **kwargs)
    with _context_lock:
        record.context = dict(_context)
    return record


def _install_record_factory() -> None:
    global _base_factory
    if _base_factory is None:
        _base_factory = logging.getLogRecordFactory()
        logging.setLogRecordFactory(_context_record_factory)


class LogContext:
    """Bind fields to every log record for the duration of a block.

    Contexts nest; leaving one restores the fields that were bound before it.

    Example:
        >>> with LogContext(run_id="3f2a", phase="deliver"):
        ...     logger.info("Delivery started")
    """

    def __init__(self, **fields: Any) -> None:
        self.fields = fields
        self._previous: Dict[str, Any] = {}

    def __enter__(self) -> "LogContext":
        _install_record_factory()
        with _context_lock:
            self._previous = dict(_context)
            _context.update(self.fields)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        with _context_lock:
            _context.clear()
            _context.update(self._previous)


def setup_logging(
    level: str = "INFO",
    format: str = "simple",
    log_file: Optional[Path] = None,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
) -> None:
    """Configure the root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Console format (simple, detailed, json)
        log_file: Optional rotating JSON log file
        max_file_size_mb: Max log file size in MB
        backup_count: Number of rotated files to keep
    """
    _install_record_factory()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    if format == "json":
        console_handler.setFormatter(StructuredFormatter())
    else:
        console_handler.setFormatter(CONSOLE_FORMATS.get(format, CONSOLE_FORMATS["simple"]))
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)
