"""
Injectable clock.

All timestamps in the adoption lifecycle are naive UTC datetimes, matching
the `DateTime` columns they are stored in.
"""

from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Clock:
    """Source of "now" for the lifecycle engine, service and scheduler."""

    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock(Clock):
    """Wall-clock time."""

    def now(self) -> datetime:
        return utcnow()


class FrozenClock(Clock):
    """A clock that only moves when told to. Used to test the 48h windows."""

    def __init__(self, start: datetime):
        self._now = start

    def now(self) -> datetime:
        return self._now

    def set(self, moment: datetime) -> None:
        self._now = moment

    def advance(self, **delta) -> datetime:
        """Move forward by a timedelta expressed as keyword args (hours=49)."""
        self._now = self._now + timedelta(**delta)
        return self._now
