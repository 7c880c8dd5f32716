"""Timestamp utilities for API payloads."""

from datetime import datetime, timezone


def iso_timestamp() -> str:
    """ISO-8601 timestamp for API/log payloads."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
