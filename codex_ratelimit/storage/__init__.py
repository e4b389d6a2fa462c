"""
Read-only access to Codex session logs.

Locates rollout files in the date-partitioned session hierarchy and
extracts token_count events from them.
"""
