from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""

    return datetime.now(timezone.utc)


def utcnow_naive() -> datetime:
    """Return the current time as a naive UTC datetime.

    pymongo hands back naive UTC datetimes (the client is not `tz_aware`), so
    everything written to and compared against Mongo uses this form.
    """

    return utcnow().replace(tzinfo=None)


def clamp_int(val: int, *, lo: int, hi: int) -> int:
    """Clamp `val` into the inclusive range [`lo`, `hi`]."""

    return max(lo, min(hi, int(val)))


__all__ = ["clamp_int", "utcnow", "utcnow_naive"]
