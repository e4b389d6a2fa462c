"""
Rollout file reader.

Extracts the latest token_count event from a single session log file.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .models import TokenCountEvent, parse_event_line

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReadResult:
    """Outcome of scanning one file.

    Exactly one of three states: event found, read error, or a readable
    file with no token_count events (both fields None).
    """
    event: Optional[TokenCountEvent] = None
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.event is not None


def read_latest_event(path: Union[str, Path]) -> ReadResult:
    """Return the most recent token_count event in a rollout file.

    Lines are parsed independently; malformed lines and other event
    types are skipped. Recency is the event's own timestamp, with later
    lines winning ties.

    Args:
        path: Path to a rollout-*.jsonl file

    Returns:
        ReadResult with the latest event, the read error, or neither
    """
    latest: Optional[TokenCountEvent] = None
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            for line in f:
                event = parse_event_line(line)
                if event is None:
                    continue
                if latest is None or event.timestamp >= latest.timestamp:
                    latest = event
    except OSError as e:
        logger.warning("Error reading session file %s: %s", path, e)
        return ReadResult(error=str(e))

    return ReadResult(event=latest)


def read_latest_event_or_none(path: Union[str, Path]) -> Optional[TokenCountEvent]:
    """Like read_latest_event, treating a read failure as no event."""
    return read_latest_event(path).event
