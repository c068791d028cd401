"""
Clock -- the only source of "now" for the ledger.

Services receive a Clock instead of calling ``datetime.now()``.  Two values
come from it: ``recorded_at`` (an aware UTC instant) and the default
``occurred_on`` of a new record, which is the calendar date in the
congregation's time zone, not in UTC.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone, tzinfo


class Clock(ABC):
    """
    Contract:
        now() is timezone-aware and in UTC.
        today() is the date of now() as seen in ``self.tz``.
    """

    def __init__(self, tz: tzinfo | None = None):
        self.tz = tz or timezone.utc

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().astimezone(self.tz).date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """A clock that only moves when told to."""

    def __init__(self, fixed_time: datetime, tz: tzinfo | None = None):
        super().__init__(tz)
        if fixed_time.tzinfo is None:
            raise ValueError("fixed_time must be timezone-aware")
        self._now = fixed_time.astimezone(timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> datetime:
        self._now += delta
        return self._now
