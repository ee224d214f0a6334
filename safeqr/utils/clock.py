"""
Time helpers.

Every time-dependent component receives a ``Clock`` (a zero-argument
callable returning an aware UTC ``datetime``) so that expiry can be
driven deterministically in tests.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]

__all__ = ["Clock", "to_iso", "utcnow"]


def utcnow() -> datetime:
    """Default clock: the current instant in UTC."""
    return datetime.now(timezone.utc)


def to_iso(moment: datetime) -> str:
    """Serialise *moment* for PostgREST filters and payloads.

    Naive datetimes are taken to be UTC.  A fixed microsecond precision
    keeps string comparisons on ``timestamptz`` columns consistent.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")
