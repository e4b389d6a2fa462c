"""
Token counting and usage tracking.

Holds the token counters reported by Codex token_count events.
"""

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

_FIELDS = (
    "input_tokens",
    "cached_input_tokens",
    "output_tokens",
    "reasoning_output_tokens",
    "total_tokens",
)


@dataclass(frozen=True)
class TokenUsage:
    """Token usage counters as reported by the session log.
    
    total_tokens is taken from the record as-is and never recomputed;
    the source may be internally inconsistent.
    """
    input_tokens: int = 0
    cached_input_tokens: int = 0
    output_tokens: int = 0
    reasoning_output_tokens: int = 0
    total_tokens: int = 0

    def __post_init__(self):
        """Validate counters are non-negative."""
        for name in _FIELDS:
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative")

    @classmethod
    def empty(cls) -> "TokenUsage":
        """All-zero usage, used when a record omits its usage info."""
        return cls()


def _to_counter(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    try:
        finite = math.isfinite(value)
    except OverflowError:
        return 0
    if not finite:
        return 0
    return max(0, int(value))


def parse_token_usage(data: Optional[Mapping[str, Any]]) -> Optional[TokenUsage]:
    """Build TokenUsage from a raw usage mapping.
    
    Args:
        data: Mapping such as ``info.total_token_usage``
        
    Returns:
        TokenUsage with missing or non-numeric counters set to 0,
        or None if data is not a mapping
    """
    if not isinstance(data, Mapping):
        return None
    return TokenUsage(**{name: _to_counter(data.get(name)) for name in _FIELDS})


def format_token_number(num: int) -> str:
    """Format a token count in thousands, e.g. 1234567 -> '1,235 K'."""
    # round half up, matching how the counts are shown elsewhere
    thousands = int(num / 1000 + 0.5)
    return f"{thousands:,} K"


def format_token_usage(usage: TokenUsage) -> str:
    """One-line summary of usage counters (total_tokens is not shown)."""
    return (
        f"input {format_token_number(usage.input_tokens)}, "
        f"cached {format_token_number(usage.cached_input_tokens)}, "
        f"output {format_token_number(usage.output_tokens)}, "
        f"reasoning {format_token_number(usage.reasoning_output_tokens)}"
    )
