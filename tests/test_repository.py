"""
Unit tests for the freshest-record search across session files.
"""

import json
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from codex_ratelimit.storage.locator import day_directory
from codex_ratelimit.storage.repository import SessionRepository, get_repository

NOW = datetime.now(timezone.utc).replace(microsecond=0)


def _event_line(timestamp, marker):
    return json.dumps({
        "timestamp": timestamp.strftime("%Y-%m-%dT%H:%M:%S.000Z"),
        "type": "event_msg",
        "payload": {"type": "token_count", "marker": marker},
    })


class SessionTree:
    """Builds a YYYY/MM/DD rollout tree under a root directory."""

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)
        self.today = NOW.astimezone().date()

    def add(self, name, days_ago=0, age=timedelta(minutes=1), events=(), lines=()):
        directory = day_directory(self.root, self.today - timedelta(days=days_ago))
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / name
        content = [_event_line(ts, marker) for ts, marker in events] + list(lines)
        path.write_text("\n".join(content) + ("\n" if content else ""), encoding="utf-8")
        mtime = (NOW - age).timestamp()
        os.utime(path, (mtime, mtime))
        return path


@pytest.fixture
def tree(tmp_path):
    return SessionTree(tmp_path / "sessions")


def _repository(tree, **kwargs):
    return SessionRepository(tree.root, now=lambda: NOW, **kwargs)


class TestRecentActivityPhase:
    """Test the recent-activity fast path."""

    def test_newest_recent_file_wins(self, tree):
        """Test that the most recently modified file of today is used."""
        tree.add("rollout-a.jsonl", age=timedelta(minutes=20), events=[(NOW, "a")])
        newest = tree.add("rollout-b.jsonl", age=timedelta(minutes=5), events=[(NOW - timedelta(hours=1), "b")])

        resolved = _repository(tree).find_latest_event()

        assert resolved.file_path == newest
        assert resolved.event.payload["marker"] == "b"

    def test_recent_file_without_events_falls_through(self, tree):
        """Test that an empty recent file does not stop the search."""
        tree.add("rollout-empty.jsonl", age=timedelta(minutes=1), lines=["not json"])
        fallback = tree.add("rollout-older.jsonl", age=timedelta(minutes=30), events=[(NOW, "older")])

        resolved = _repository(tree).find_latest_event()

        assert resolved.file_path == fallback


class TestFallbackPhase:
    """Test the exhaustive look-back scan."""

    def test_old_today_file_found_in_fallback(self, tree):
        """Test that today's files older than an hour are still searched."""
        path = tree.add("rollout-morning.jsonl", age=timedelta(hours=3), events=[(NOW, "morning")])

        resolved = _repository(tree).find_latest_event()

        assert resolved.file_path == path

    def test_previous_days_sorted_by_mtime(self, tree):
        """Test that the newest-modified file across days wins."""
        tree.add("rollout-3days.jsonl", days_ago=3, age=timedelta(days=3), events=[(NOW, "3")])
        newer = tree.add("rollout-1day.jsonl", days_ago=1, age=timedelta(days=1), events=[(NOW, "1")])

        resolved = _repository(tree).find_latest_event()

        assert resolved.file_path == newer

    def test_first_file_by_mtime_wins_over_newer_event(self, tree):
        """Test that mtime order decides, not the event timestamp."""
        by_mtime = tree.add(
            "rollout-x.jsonl", days_ago=1, age=timedelta(hours=20),
            events=[(NOW - timedelta(days=2), "stale-event")]
        )
        tree.add(
            "rollout-y.jsonl", days_ago=2, age=timedelta(days=2),
            events=[(NOW, "fresh-event")]
        )

        resolved = _repository(tree).find_latest_event()

        assert resolved.file_path == by_mtime
        assert resolved.event.payload["marker"] == "stale-event"

    def test_files_beyond_lookback_are_ignored(self, tree):
        """Test that only seven calendar days are searched."""
        tree.add("rollout-old.jsonl", days_ago=7, age=timedelta(days=7), events=[(NOW, "old")])

        assert _repository(tree).find_latest_event() is None

    def test_no_events_anywhere(self, tree):
        """Test that files without token_count events give None."""
        tree.add("rollout-a.jsonl", lines=["{}"])
        tree.add("rollout-b.jsonl", days_ago=2, age=timedelta(days=2))

        assert _repository(tree).find_latest_event() is None

    def test_missing_root(self, tmp_path):
        """Test that a missing root gives None, not an error."""
        repository = SessionRepository(tmp_path / "missing", now=lambda: NOW)

        assert not repository.root_exists()
        assert repository.find_latest_event() is None


class TestConcurrentScan:
    """Test that concurrent reads keep the sorted-order winner."""

    def test_concurrent_matches_sequential(self, tree):
        """Test that the earliest file in mtime order wins with several workers."""
        for i in range(6):
            tree.add(f"rollout-empty-{i}.jsonl", days_ago=1, age=timedelta(hours=2 + i), lines=["{}"])
        expected = tree.add("rollout-hit.jsonl", days_ago=1, age=timedelta(hours=9), events=[(NOW, "hit")])
        for i in range(3):
            tree.add(f"rollout-later-{i}.jsonl", days_ago=2, age=timedelta(hours=30 + i), events=[(NOW, "later")])

        sequential = _repository(tree).find_latest_event()
        concurrent = _repository(tree, max_workers=4).find_latest_event()

        assert sequential.file_path == expected
        assert concurrent == sequential

    def test_invalid_arguments(self, tree):
        """Test that non-positive settings are rejected."""
        with pytest.raises(ValueError, match="max_workers"):
            _repository(tree, max_workers=0)
        with pytest.raises(ValueError, match="lookback_days"):
            _repository(tree, lookback_days=0)


class TestGetRepository:
    """Test the repository accessor."""

    def test_fresh_instance_per_call(self, tmp_path):
        """Test that no repository is shared between calls."""
        first = get_repository(tmp_path)
        second = get_repository(tmp_path)
        assert second is not first
        assert second.session_root == first.session_root == tmp_path

    def test_clock_is_passed_through(self, tmp_path):
        """Test that the given clock drives the repository."""
        instant = datetime(2025, 1, 1, tzinfo=timezone.utc)
        repository = get_repository(tmp_path, now=lambda: instant)
        assert repository._now() == instant
