"""
Data models for the session log.

Defines the token_count event record and the line parser for it.
"""

import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

EVENT_RECORD_TYPE = "event_msg"
TOKEN_COUNT_PAYLOAD_TYPE = "token_count"

_FRACTION = re.compile(r"(?<=\d\d:\d\d:\d\d)\.(\d+)")


@dataclass(frozen=True)
class TokenCountEvent:
    """One token_count event read from a rollout file.

    Session logs are append-only and owned by Codex; these records are
    never written back.
    """
    timestamp: datetime
    payload: Dict[str, Any]

    @property
    def info(self) -> Optional[Dict[str, Any]]:
        """Usage info section, or None if absent or malformed."""
        info = self.payload.get("info")
        return info if isinstance(info, dict) else None

    @property
    def rate_limits(self) -> Dict[str, Any]:
        """Rate limits section; empty when the event carries none."""
        rate_limits = self.payload.get("rate_limits")
        return rate_limits if isinstance(rate_limits, dict) else {}


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 event timestamp into an aware UTC datetime.

    A trailing ``Z`` is accepted; naive timestamps are taken as UTC.

    Returns:
        Parsed datetime, or None if value is not a valid timestamp string
    """
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # fromisoformat before 3.11 only takes 3 or 6 fractional digits
    text = _FRACTION.sub(lambda m: "." + (m.group(1) + "000000")[:6], text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_event_line(line: str) -> Optional[TokenCountEvent]:
    """Parse one JSON line into a TokenCountEvent.

    Args:
        line: Raw line from a rollout file

    Returns:
        TokenCountEvent if the line is a token_count event with a valid
        timestamp, otherwise None
    """
    if not line.strip():
        return None
    try:
        record = json.loads(line)
    except (ValueError, RecursionError):
        return None
    if not isinstance(record, dict) or record.get("type") != EVENT_RECORD_TYPE:
        return None

    payload = record.get("payload")
    if not isinstance(payload, dict) or payload.get("type") != TOKEN_COUNT_PAYLOAD_TYPE:
        return None

    timestamp = parse_timestamp(record.get("timestamp"))
    if timestamp is None:
        return None

    return TokenCountEvent(timestamp=timestamp, payload=payload)
