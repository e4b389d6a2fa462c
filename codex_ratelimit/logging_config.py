"""Logging setup for the CLI (rich console or JSON lines)."""

import json
import logging
import sys
import traceback
from datetime import datetime, timezone

from rich.console import Console
from rich.logging import RichHandler


class JSONFormatter(logging.Formatter):
    """Single-line JSON log output."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = "".join(traceback.format_exception(*record.exc_info))
        return json.dumps(entry, default=str)


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "text",
    enable_logging: bool = False,
) -> None:
    """Configure the root logger. Call once at startup.

    With enable_logging off only warnings and errors are shown.
    """
    level = getattr(logging, log_level.upper(), logging.INFO) if enable_logging else logging.WARNING

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    if log_format.lower() == "json":
        handler: logging.Handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JSONFormatter())
    else:
        handler = RichHandler(console=Console(stderr=True), show_path=False)
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    root.addHandler(handler)
