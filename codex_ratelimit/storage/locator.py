"""
Session directory discovery.

Resolves the session root and enumerates rollout files in the
``<root>/YYYY/MM/DD/`` hierarchy over a bounded look-back window.
"""

import logging
import os
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Iterator, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_CODEX_HOME = "~/.codex"
SESSIONS_DIR_NAME = "sessions"
ROLLOUT_PATTERN = "rollout-*.jsonl"
LOOKBACK_DAYS = 7


@dataclass(frozen=True)
class CandidateFile:
    """A rollout file with its modification time (epoch seconds)."""
    path: Path
    mtime: float


def resolve_session_root(custom_path: Optional[str] = None) -> Path:
    """Return the absolute session root directory.

    Args:
        custom_path: Optional override; ``~`` and relative segments are
            resolved against the home and current directories

    Returns:
        The override if given, otherwise ``$CODEX_HOME/sessions``
        (``~/.codex/sessions`` when CODEX_HOME is unset)
    """
    if custom_path:
        return Path(custom_path).expanduser().resolve()
    codex_home = os.environ.get("CODEX_HOME") or DEFAULT_CODEX_HOME
    return (Path(codex_home).expanduser() / SESSIONS_DIR_NAME).resolve()


def day_directory(root: Path, day: date) -> Path:
    """Directory holding the rollout files written on ``day``."""
    return root / f"{day.year:04d}" / f"{day.month:02d}" / f"{day.day:02d}"


def iter_lookback_days(today: date, days: int = LOOKBACK_DAYS) -> Iterator[date]:
    """Yield ``days`` calendar dates, today first, going backward."""
    for days_back in range(days):
        yield today - timedelta(days=days_back)


def list_rollout_files(directory: Path) -> List[CandidateFile]:
    """List rollout files in one day directory.

    A missing directory yields an empty list. Files whose modification
    time cannot be read are logged and skipped.
    """
    if not directory.is_dir():
        return []

    candidates = []
    for path in sorted(directory.glob(ROLLOUT_PATTERN)):
        try:
            stats = path.stat()
        except OSError as e:
            logger.debug("Error getting mtime for session file %s: %s", path, e)
            continue
        if not path.is_file():
            continue
        candidates.append(CandidateFile(path=path, mtime=stats.st_mtime))
    return candidates


def collect_candidates(
    root: Path,
    today: date,
    days: int = LOOKBACK_DAYS,
) -> List[CandidateFile]:
    """Collect rollout files across the look-back window.

    Args:
        root: Session root directory
        today: First day of the look-back
        days: Number of calendar days to search

    Returns:
        Candidate files in day order (today first); empty if the root
        does not exist
    """
    if not root.is_dir():
        return []

    candidates: List[CandidateFile] = []
    for day in iter_lookback_days(today, days):
        candidates.extend(list_rollout_files(day_directory(root, day)))
    return candidates
