"""
Rate-limit snapshot assembly.

Turns the latest token_count event into a single immutable snapshot.
get_rate_limit_data is the one query operation offered to presentation
layers; it never raises.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, Tuple

from .rate_limits import NormalizedRateLimitWindow, normalize_window, parse_raw_window
from .token_counter import TokenUsage, parse_token_usage
from codex_ratelimit.storage.locator import resolve_session_root
from codex_ratelimit.storage.models import TokenCountEvent
from codex_ratelimit.storage.repository import SessionRepository, get_repository

logger = logging.getLogger(__name__)

NOT_FOUND_REASON = "No token_count events found in session files"
MISSING_INFO_NOTE = "Token count payload missing usage info; defaulting to zero values."
INCOMPLETE_INFO_NOTE = (
    "Token count payload has incomplete usage info; defaulting missing fields to zero."
)


@dataclass(frozen=True)
class UsageSnapshot:
    """Usage and rate-limit state derived from one token_count event."""
    file_path: Path
    record_timestamp: datetime
    current_time: datetime
    total_usage: TokenUsage
    last_usage: TokenUsage
    primary: Optional[NormalizedRateLimitWindow] = None
    secondary: Optional[NormalizedRateLimitWindow] = None
    notes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class QueryOutcome:
    """Result of a snapshot query: a snapshot or a failure reason.

    unexpected marks failures caused by an error rather than by missing
    data, so callers can tell "not found" from "something broke".
    """
    found: bool
    snapshot: Optional[UsageSnapshot] = None
    reason: Optional[str] = None
    unexpected: bool = False

    def __post_init__(self):
        """Validate the outcome is either a success or a failure."""
        if self.found and self.snapshot is None:
            raise ValueError("found outcome requires a snapshot")
        if not self.found and not self.reason:
            raise ValueError("failed outcome requires a reason")

    @classmethod
    def success(cls, snapshot: UsageSnapshot) -> "QueryOutcome":
        return cls(found=True, snapshot=snapshot)

    @classmethod
    def failure(cls, reason: str, unexpected: bool = False) -> "QueryOutcome":
        return cls(found=False, reason=reason, unexpected=unexpected)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_snapshot(file_path: Path, event: TokenCountEvent, now: datetime) -> UsageSnapshot:
    """Assemble a snapshot from a resolved event.

    Missing usage numbers become zeros and missing windows stay absent;
    neither fails the snapshot.

    Args:
        file_path: Rollout file the event was read from
        event: The token_count event
        now: Evaluation instant for staleness and time progress

    Returns:
        UsageSnapshot for the event
    """
    notes = []
    info = event.info
    total_usage = parse_token_usage(info.get("total_token_usage")) if info else None
    last_usage = parse_token_usage(info.get("last_token_usage")) if info else None

    if info is None:
        notes.append(MISSING_INFO_NOTE)
    elif total_usage is None or last_usage is None:
        notes.append(INCOMPLETE_INFO_NOTE)
    for note in notes:
        logger.info(note)

    windows = {}
    for name in ("primary", "secondary"):
        raw = parse_raw_window(event.rate_limits.get(name))
        windows[name] = normalize_window(event.timestamp, raw, now) if raw else None

    return UsageSnapshot(
        file_path=Path(file_path),
        record_timestamp=event.timestamp,
        current_time=now,
        total_usage=total_usage or TokenUsage.empty(),
        last_usage=last_usage or TokenUsage.empty(),
        primary=windows["primary"],
        secondary=windows["secondary"],
        notes=tuple(notes),
    )


def get_rate_limit_data(
    session_path: Optional[str] = None,
    repository: Optional[SessionRepository] = None,
    now: Optional[Callable[[], datetime]] = None,
) -> QueryOutcome:
    """Query the latest rate-limit snapshot.

    Args:
        session_path: Optional session root override
        repository: Repository to search; defaults to the one for the
            resolved session root
        now: Clock returning an aware datetime; read once per query

    Returns:
        QueryOutcome with the snapshot, or a failure reason. Unexpected
        errors are logged and returned as failures, never raised.
    """
    clock = now or _utcnow
    try:
        if repository is None:
            repository = get_repository(resolve_session_root(session_path), now=clock)

        logger.debug("Searching for latest token_count event in %s", repository.session_root)

        if not repository.root_exists():
            logger.error("Session path does not exist: %s", repository.session_root)
            return QueryOutcome.failure(f"Session path does not exist: {repository.session_root}")

        resolved = repository.find_latest_event()
        if resolved is None:
            return QueryOutcome.failure(NOT_FOUND_REASON)

        snapshot = build_snapshot(resolved.file_path, resolved.event, clock())
        logger.info("Found latest token_count event in: %s", resolved.file_path)
        return QueryOutcome.success(snapshot)

    except Exception as e:
        logger.exception("Error getting rate limit data")
        return QueryOutcome.failure(str(e) or e.__class__.__name__, unexpected=True)
