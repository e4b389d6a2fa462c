"""
Rate-limit window normalization.

Converts the raw window descriptors of a token_count event into
normalized usage and time-progress percentages.

Reset Resolution Order:
1. resets_at - absolute reset instant in epoch seconds
2. resets_in_seconds - offset from the record's own timestamp
3. Neither usable - the window is reported as outdated
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional, Union


def _finite_number(value: Any) -> Optional[float]:
    """Return value as float if it is a finite real number, else None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    if not math.isfinite(number):
        return None
    return number


@dataclass(frozen=True)
class AbsoluteReset:
    """Reset given as an absolute instant (epoch seconds)."""
    epoch_seconds: float

    def resolve(self, record_timestamp: datetime) -> Optional[datetime]:
        try:
            return datetime.fromtimestamp(self.epoch_seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None


@dataclass(frozen=True)
class RelativeReset:
    """Reset given as seconds after the record timestamp."""
    offset_seconds: float

    def resolve(self, record_timestamp: datetime) -> Optional[datetime]:
        try:
            return record_timestamp + timedelta(seconds=self.offset_seconds)
        except OverflowError:
            return None


@dataclass(frozen=True)
class MissingReset:
    """Neither reset encoding was usable."""

    def resolve(self, record_timestamp: datetime) -> Optional[datetime]:
        return None


ResetDescriptor = Union[AbsoluteReset, RelativeReset, MissingReset]


def parse_reset_descriptor(data: Mapping[str, Any]) -> ResetDescriptor:
    """Pick the reset encoding, preferring resets_at over resets_in_seconds."""
    resets_at = _finite_number(data.get("resets_at"))
    if resets_at is not None:
        return AbsoluteReset(resets_at)
    resets_in = _finite_number(data.get("resets_in_seconds"))
    if resets_in is not None:
        return RelativeReset(resets_in)
    return MissingReset()


@dataclass(frozen=True)
class RawRateLimitWindow:
    """Window descriptor as read from a log line.

    window_minutes keeps the raw value; it may be None, zero, negative
    or not a number at all.
    """
    used_percent: float
    reset: ResetDescriptor = field(default_factory=MissingReset)
    window_minutes: Any = None


@dataclass(frozen=True)
class NormalizedRateLimitWindow:
    """Window with derived percentages, ready for presentation."""
    used_percent: float
    time_percent: float
    reset_time: datetime
    outdated: bool
    window_minutes: float

    def __post_init__(self):
        """Validate time_percent is a percentage."""
        if not 0 <= self.time_percent <= 100:
            raise ValueError("time_percent must be between 0 and 100")


def parse_raw_window(data: Any) -> Optional[RawRateLimitWindow]:
    """Build a RawRateLimitWindow from a rate_limits entry.

    Args:
        data: Value of ``rate_limits.primary`` or ``rate_limits.secondary``

    Returns:
        RawRateLimitWindow, or None if the window is absent
    """
    if not isinstance(data, Mapping):
        return None
    used_percent = _finite_number(data.get("used_percent"))
    return RawRateLimitWindow(
        used_percent=used_percent if used_percent is not None else 0.0,
        reset=parse_reset_descriptor(data),
        window_minutes=data.get("window_minutes"),
    )


def _window_minutes(raw: Any) -> float:
    minutes = _finite_number(raw)
    if minutes is None or minutes <= 0:
        return 0
    return minutes


def normalize_window(
    record_timestamp: datetime,
    raw: RawRateLimitWindow,
    now: datetime,
) -> NormalizedRateLimitWindow:
    """Compute reset time, staleness and time progress for one window.

    Staleness is judged against ``now`` rather than the record timestamp,
    so a long-idle record is reported as outdated once its reset passed.

    Args:
        record_timestamp: Timestamp of the token_count event
        raw: Raw window descriptor
        now: Evaluation instant

    Returns:
        NormalizedRateLimitWindow; a window without usable reset data is
        outdated with time_percent 0 and window_minutes 0
    """
    reset_time = raw.reset.resolve(record_timestamp)
    if reset_time is None:
        return NormalizedRateLimitWindow(
            used_percent=raw.used_percent,
            time_percent=0.0,
            reset_time=record_timestamp,
            outdated=True,
            window_minutes=0,
        )

    outdated = reset_time < now
    window_minutes = _window_minutes(raw.window_minutes)
    window_seconds = window_minutes * 60

    if window_seconds <= 0:
        time_percent = 0.0
    elif outdated:
        time_percent = 100.0
    else:
        seconds_until_reset = max(0, math.floor((reset_time - now).total_seconds()))
        elapsed = window_seconds - seconds_until_reset
        time_percent = min(100.0, max(0.0, elapsed / window_seconds * 100))

    return NormalizedRateLimitWindow(
        used_percent=raw.used_percent,
        time_percent=time_percent,
        reset_time=reset_time,
        outdated=outdated,
        window_minutes=window_minutes,
    )
