"""
Tests for logging setup.
"""

import json
import logging

import pytest
from rich.logging import RichHandler

from codex_ratelimit.logging_config import JSONFormatter, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:
    """Test root logger configuration."""

    def test_disabled_logging_shows_warnings_only(self):
        """Test that the default keeps only warnings and errors."""
        setup_logging("DEBUG", "text", enable_logging=False)

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], RichHandler)

    def test_enabled_logging_uses_configured_level(self):
        """Test that enable_logging applies the level."""
        setup_logging("DEBUG", "text", enable_logging=True)
        assert logging.getLogger().level == logging.DEBUG

    def test_json_format(self):
        """Test that the json format installs the JSON formatter."""
        setup_logging("INFO", "json", enable_logging=True)

        handler = logging.getLogger().handlers[0]
        assert isinstance(handler.formatter, JSONFormatter)


class TestJSONFormatter:
    """Test JSON log lines."""

    def test_format(self):
        """Test the fields of a formatted record."""
        record = logging.LogRecord(
            "codex_ratelimit.storage.reader", logging.WARNING, __file__, 1,
            "Error reading session file %s", ("/x.jsonl",), None
        )

        entry = json.loads(JSONFormatter().format(record))

        assert entry["level"] == "WARNING"
        assert entry["logger"] == "codex_ratelimit.storage.reader"
        assert entry["message"] == "Error reading session file /x.jsonl"
        assert "exception" not in entry
