"""Common time utilities."""

from __future__ import annotations

import datetime as dt


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp suitable for DB defaults."""
    return dt.datetime.now(dt.UTC)


def parse_iso_datetime(value: str) -> dt.datetime:
    """Parse an ISO-8601 string carrying an offset into an aware UTC datetime.

    A trailing ``Z`` is accepted as UTC. Naive timestamps are rejected.

    Raises
    ------
    ValueError
        If ``value`` is not ISO-8601 or lacks timezone information.

    """
    parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        msg = f"timestamp {value!r} must include timezone information"
        raise ValueError(msg)
    return parsed.astimezone(dt.UTC)
