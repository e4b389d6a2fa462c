"""
Repository pattern for session log access.

Finds the freshest token_count event across the session hierarchy.

Search Order:
1. Recent activity - today's files modified within the last hour
2. Full look-back - every remaining file of the last 7 days

Both phases scan files newest-modified first and stop at the first file
that holds any token_count event.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Set

from .locator import (
    LOOKBACK_DAYS,
    CandidateFile,
    collect_candidates,
    day_directory,
    list_rollout_files,
)
from .models import TokenCountEvent
from .reader import read_latest_event_or_none

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_WINDOW = timedelta(hours=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ResolvedEvent:
    """The winning event and the file it came from."""
    file_path: Path
    event: TokenCountEvent


class SessionRepository:
    """Repository for locating the latest token_count event.

    Trades strict freshness for I/O: modification time is assumed to
    track event recency, so the first file by mtime that holds any
    token_count event wins, even if an older-mtime file holds a newer
    event.
    """

    def __init__(
        self,
        session_root: Path,
        lookback_days: int = LOOKBACK_DAYS,
        recent_window: timedelta = RECENT_ACTIVITY_WINDOW,
        max_workers: int = 1,
        now: Callable[[], datetime] = _utcnow,
    ):
        """Initialize the repository.

        Args:
            session_root: Absolute session root directory
            lookback_days: Calendar days searched in the fallback phase
            recent_window: Max file age for the recent-activity phase
            max_workers: Files read concurrently; 1 reads sequentially
            now: Clock returning an aware datetime
        """
        if lookback_days < 1:
            raise ValueError("lookback_days must be >= 1")
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.session_root = Path(session_root)
        self.lookback_days = lookback_days
        self.recent_window = recent_window
        self.max_workers = max_workers
        self._now = now

    def root_exists(self) -> bool:
        return self.session_root.is_dir()

    def find_latest_event(self) -> Optional[ResolvedEvent]:
        """Find the latest token_count event.

        Returns:
            ResolvedEvent, or None if no file in the look-back holds one
            or the session root does not exist
        """
        if not self.root_exists():
            logger.error("Session path does not exist: %s", self.session_root)
            return None

        now = self._now()
        today = now.astimezone().date()
        attempted: Set[Path] = set()

        recent = self._recent_files(today, now)
        attempted.update(c.path for c in recent)
        resolved = self._scan(recent)
        if resolved is not None:
            logger.debug("Found token_count event in recent file %s", resolved.file_path)
            return resolved

        remaining = [
            c for c in collect_candidates(self.session_root, today, self.lookback_days)
            if c.path not in attempted
        ]
        logger.debug(
            "No recent token_count event, scanning %d files from the last %d days",
            len(remaining), self.lookback_days
        )
        return self._scan(_newest_first(remaining))

    def _recent_files(self, today, now: datetime) -> List[CandidateFile]:
        cutoff = (now - self.recent_window).timestamp()
        today_files = list_rollout_files(day_directory(self.session_root, today))
        return _newest_first(c for c in today_files if c.mtime >= cutoff)

    def _scan(self, candidates: List[CandidateFile]) -> Optional[ResolvedEvent]:
        """Return the first candidate, in list order, that holds an event."""
        if self.max_workers == 1:
            for candidate in candidates:
                event = read_latest_event_or_none(candidate.path)
                if event is not None:
                    return ResolvedEvent(file_path=candidate.path, event=event)
            return None

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            for start in range(0, len(candidates), self.max_workers):
                batch = candidates[start:start + self.max_workers]
                # map() yields in submission order, not completion order
                events = executor.map(read_latest_event_or_none, [c.path for c in batch])
                for candidate, event in zip(batch, events):
                    if event is not None:
                        return ResolvedEvent(file_path=candidate.path, event=event)
        return None


def _newest_first(candidates: Iterable[CandidateFile]) -> List[CandidateFile]:
    return sorted(candidates, key=lambda c: c.mtime, reverse=True)


def get_repository(
    session_root: Path,
    now: Callable[[], datetime] = _utcnow,
) -> SessionRepository:
    """Get a repository for a session root.

    A new instance is built per call so no state is shared between
    queries.

    Args:
        session_root: Absolute session root directory
        now: Clock returning an aware datetime

    Returns:
        SessionRepository for that root
    """
    return SessionRepository(Path(session_root), now=now)
