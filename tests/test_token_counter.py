"""
Unit tests for token usage counters and formatting.
"""

import pytest

from codex_ratelimit.core.token_counter import (
    TokenUsage,
    format_token_number,
    format_token_usage,
    parse_token_usage
)


class TestTokenUsage:
    """Test the TokenUsage value type."""

    def test_empty_is_all_zero(self):
        """Test that empty() returns zero counters."""
        usage = TokenUsage.empty()
        assert usage == TokenUsage(0, 0, 0, 0, 0)

    def test_negative_counter_rejected(self):
        """Test that negative counters are rejected."""
        with pytest.raises(ValueError, match="output_tokens cannot be negative"):
            TokenUsage(output_tokens=-1)

    def test_total_is_not_recomputed(self):
        """Test that total_tokens is kept even if inconsistent."""
        usage = parse_token_usage({
            "input_tokens": 10,
            "output_tokens": 5,
            "total_tokens": 3
        })
        assert usage.total_tokens == 3


class TestParseTokenUsage:
    """Test parsing of raw usage mappings."""

    def test_full_mapping(self):
        """Test that all five counters are read."""
        usage = parse_token_usage({
            "input_tokens": 1200,
            "cached_input_tokens": 800,
            "output_tokens": 300,
            "reasoning_output_tokens": 64,
            "total_tokens": 1500
        })
        assert usage == TokenUsage(1200, 800, 300, 64, 1500)

    def test_missing_and_invalid_counters_default_to_zero(self):
        """Test that missing, non-numeric and negative counters become 0."""
        usage = parse_token_usage({
            "input_tokens": "many",
            "output_tokens": -5,
            "reasoning_output_tokens": True,
            "total_tokens": 42.9
        })
        assert usage == TokenUsage(0, 0, 0, 0, 42)

    def test_huge_integer_counter_defaults_to_zero(self):
        """Test that a counter too large for a float becomes 0."""
        usage = parse_token_usage({"input_tokens": 10**400, "total_tokens": 5})
        assert usage == TokenUsage(0, 0, 0, 0, 5)

    def test_non_mapping_returns_none(self):
        """Test that a non-mapping value is treated as absent."""
        assert parse_token_usage(None) is None
        assert parse_token_usage([1, 2, 3]) is None


class TestFormatting:
    """Test token count formatting."""

    @pytest.mark.parametrize("num,expected", [
        (0, "0 K"),
        (499, "0 K"),
        (500, "1 K"),
        (1500, "2 K"),
        (1234567, "1,235 K"),
    ])
    def test_format_token_number(self, num, expected):
        """Test rounding to thousands with separators."""
        assert format_token_number(num) == expected

    def test_format_token_usage(self):
        """Test the one-line usage summary."""
        usage = TokenUsage(12000, 3000, 4500, 1000, 19500)
        assert format_token_usage(usage) == (
            "input 12 K, cached 3 K, output 5 K, reasoning 1 K"
        )
