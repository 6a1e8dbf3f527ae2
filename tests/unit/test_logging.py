"""Unit tests for the logging infrastructure."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest
from rich.logging import RichHandler

from trellis.runtime.logging import (
    JSONLFormatter,
    get_dispatch_logger,
    get_log_file,
    get_logger,
    get_recent_logs,
    log_with_context,
    read_log_entries,
    setup_logging,
)


@pytest.fixture
def log_dir(tmp_path: Path) -> Iterator[Path]:
    directory = setup_logging(tmp_path / "logs", level="DEBUG", console=False)
    yield directory
    root = logging.getLogger("trellis")
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()
    root.setLevel(logging.NOTSET)


class TestSetup:
    """Tests for setup_logging."""

    def test_creates_log_file(self, log_dir: Path) -> None:
        assert get_log_file() == log_dir / "trellis.log"
        entries = get_recent_logs()
        assert entries[0]["message"] == "Trellis logging initialized"
        assert entries[0]["context"]["log_format"] == "jsonl"

    def test_console_goes_through_rich(self, tmp_path: Path) -> None:
        setup_logging(tmp_path, console=True)
        root = logging.getLogger("trellis")
        try:
            assert [type(h) for h in root.handlers] == [RotatingFileHandler, RichHandler]
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers.clear()

    def test_unknown_level(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="Unknown log level"):
            setup_logging(tmp_path, level="LOUD", console=False)


class TestStructuredLogging:
    """Tests for component loggers and context."""

    def test_context_is_written(self, log_dir: Path) -> None:
        log_with_context(
            get_dispatch_logger(),
            logging.WARNING,
            "Rejected tasks/delete",
            route="tasks",
            action="delete",
        )

        entry = get_recent_logs(count=1)[0]
        assert entry["level"] == "WARNING"
        assert entry["component"] == "Dispatch"
        assert entry["context"] == {"route": "tasks", "action": "delete"}
        assert "source" in entry

    def test_level_filter(self, log_dir: Path) -> None:
        logger = get_logger("Test")
        logger.info("kept quiet")
        logger.error("went wrong")

        errors = get_recent_logs(level="error")
        assert [e["message"] for e in errors] == ["went wrong"]

    def test_untagged_records_get_default_component(self, log_dir: Path) -> None:
        logging.getLogger("trellis.runtime.validation").warning("plain module logger")

        entry = get_recent_logs(count=1)[0]
        assert entry["message"] == "plain module logger"
        assert entry["component"] == "Trellis"

    def test_loggers_are_cached(self) -> None:
        assert get_logger("Cached") is get_logger("Cached")
        assert get_logger("Cached").name == "trellis.cached"

    def test_read_missing_file(self, tmp_path: Path) -> None:
        assert read_log_entries(tmp_path / "absent.log") == []


class TestJSONLFormatter:
    """Tests for the JSONL formatter."""

    def test_exception_info(self) -> None:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.getLogger("trellis.test").makeRecord(
                "trellis.test", logging.ERROR, __file__, 1, "failed", None, None
            )
            record.exc_info = sys.exc_info()

        entry = json.loads(JSONLFormatter().format(record))
        assert entry["message"] == "failed"
        assert entry["exception"] == {"type": "RuntimeError", "message": "boom"}
