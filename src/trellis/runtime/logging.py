"""
Trellis logging infrastructure.

Every logger lives under ``trellis.<component>`` and tags its records with a
component name (Dispatch, Store, HTTP, Panel). ``setup_logging`` attaches two
handlers to the ``trellis`` logger: a rotating JSONL file, which ``trellis
logs`` reads back, and an optional rich console handler.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from rich.logging import RichHandler

LOG_FILE_NAME = "trellis.log"

_loggers: dict[str, logging.Logger] = {}
_log_dir: Path | None = None


class JSONLFormatter(logging.Formatter):
    """
    One JSON object per line.

    Keys: timestamp, level, component, message; ``context`` when the record
    carries one, ``source`` from WARNING up, ``exception`` when exc_info is set.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "component": getattr(record, "component", "Trellis"),
            "message": record.getMessage(),
        }
        if context := getattr(record, "context", None):
            entry["context"] = context
        if record.levelno >= logging.WARNING:
            entry["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }
        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            entry["exception"] = {"type": type(exc).__name__, "message": str(exc)}
        return json.dumps(entry, default=str)


def setup_logging(
    log_dir: Path | str = ".trellis/logs",
    level: int | str = logging.INFO,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
    console: bool = True,
) -> Path:
    """
    Route ``trellis.*`` records to the JSONL file and, optionally, the console.

    Replaces handlers from any earlier call.

    Args:
        log_dir: Directory for log files
        level: Minimum log level (int or level name)
        max_bytes: Size at which the log file rotates
        backup_count: Rotated files to keep
        console: Also log to the terminal through rich

    Returns:
        Path to the log directory
    """
    global _log_dir

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")

    _log_dir = Path(log_dir)
    _log_dir.mkdir(parents=True, exist_ok=True)
    log_file = _log_dir / LOG_FILE_NAME

    handlers: list[logging.Handler] = [
        RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    ]
    handlers[0].setFormatter(JSONLFormatter())
    if console:
        console_handler = RichHandler(show_path=False, markup=False)
        console_handler.setFormatter(logging.Formatter("[%(component)s] %(message)s"))
        handlers.append(console_handler)

    root_logger = logging.getLogger("trellis")
    root_logger.setLevel(level)
    for handler in root_logger.handlers:
        handler.close()
    root_logger.handlers.clear()
    for handler in handlers:
        # Records from plain getLogger(__name__) loggers carry no component
        handler.addFilter(_ComponentFilter("Trellis"))
        handler.setLevel(level)
        root_logger.addHandler(handler)

    root_logger.info(
        "Trellis logging initialized",
        extra={
            "component": "Trellis",
            "context": {"log_format": "jsonl", "log_file": str(log_file)},
        },
    )
    return _log_dir


class _ComponentFilter(logging.Filter):
    def __init__(self, component: str):
        super().__init__()
        self.component = component

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "component"):
            record.component = self.component
        return True


def get_logger(component: str) -> logging.Logger:
    """Logger for a component, named ``trellis.<component>``; cached per component."""
    if component not in _loggers:
        logger = logging.getLogger(f"trellis.{component.lower().replace(' ', '_')}")
        logger.addFilter(_ComponentFilter(component))
        _loggers[component] = logger
    return _loggers[component]


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    context: dict[str, Any] | None = None,
    **kwargs: Any,
) -> None:
    """
    Log a message with structured context data.

    Args:
        logger: Logger instance
        level: Logging level (logging.INFO, logging.ERROR, etc.)
        message: Human-readable message
        context: Structured context data (included in the JSONL entry)
        **kwargs: Additional context items
    """
    extra = {"context": {**(context or {}), **kwargs}} if (context or kwargs) else {}
    logger.log(level, message, extra=extra)


def get_dispatch_logger() -> logging.Logger:
    return get_logger("Dispatch")


def get_store_logger() -> logging.Logger:
    return get_logger("Store")


def get_http_logger() -> logging.Logger:
    return get_logger("HTTP")


def get_panel_logger() -> logging.Logger:
    return get_logger("Panel")


def get_log_file() -> Path | None:
    """Get the path to the main log file."""
    if _log_dir:
        return _log_dir / LOG_FILE_NAME
    return None


def read_log_entries(
    log_file: Path, count: int = 50, level: str | None = None
) -> list[dict[str, Any]]:
    """
    Read the last entries of a JSONL log file.

    Args:
        log_file: Log file to read
        count: Number of recent entries to return
        level: Optional filter by level (ERROR, WARNING, etc.)

    Returns:
        List of log entries (most recent last)
    """
    if not log_file.exists():
        return []

    entries: list[dict[str, Any]] = []
    with open(log_file, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                continue
            if level and entry.get("level") != level.upper():
                continue
            entries.append(entry)

    return entries[-count:]


def get_recent_logs(count: int = 50, level: str | None = None) -> list[dict[str, Any]]:
    """Recent entries from the log file configured by ``setup_logging``."""
    log_file = get_log_file()
    if not log_file:
        return []
    return read_log_entries(log_file, count, level)
