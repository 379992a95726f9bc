"""
Domain time utilities (pure).

Centralized timestamp parsing and age helpers.

Timestamps arrive from the change-notification producer as ISO-8601 text,
sometimes with a trailing 'Z', sometimes naive. Everything is resolved to UTC.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def require_utc_timestamp(name: str, value: datetime) -> None:
    """
    Enforces the contract requirement that timestamps are UTC.

    Invariants:
    - Timestamps must be timezone-aware.
    - Timestamps must have UTC offset 0.
    """

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a producer timestamp into a timezone-aware UTC datetime.

    Returns None for absent, empty or unparseable values. Naive timestamps are
    interpreted as UTC.
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        # Python's fromisoformat doesn't consistently accept 'Z' across versions.
        try:
            dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_unix_seconds(value: Any, now: Optional[datetime] = None) -> int:
    """
    Convert a timestamp to whole Unix seconds.

    Absent input yields the current time.
    """

    dt = parse_timestamp(value)
    if dt is None:
        dt = now or utc_now()
    return math.floor(dt.timestamp())


def is_older_than(value: Any, max_days: int, now: Optional[datetime] = None) -> bool:
    """
    True when the timestamp lies more than `max_days` whole days from `now`.

    Days are counted as ceil(|now - value| / 24h), so a timestamp exactly
    `max_days` old is still in range. Absent timestamps are never old.
    """

    dt = parse_timestamp(value)
    if dt is None:
        return False

    reference = now or utc_now()
    require_utc_timestamp("now", reference)

    diff = abs(reference - dt)
    diff_days = math.ceil(diff / timedelta(days=1))
    return diff_days > max_days


def instant_or_epoch(value: Any) -> datetime:
    """Resolve a timestamp for comparison; absent values compare as epoch zero."""

    return parse_timestamp(value) or EPOCH
