"""
Core modules for Codex Rate Limit.

This package contains the value types and pure computations: token usage
counters, rate-limit window normalization, and snapshot assembly.
"""
