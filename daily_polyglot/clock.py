"""
Calendar date keys for daily progress tracking
"""

from collections.abc import Callable
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

# ISO calendar date, e.g. "2025-07-10"
DateKey = str


def previous_day(date_key: DateKey) -> DateKey:
    """Return the date key of the day before the given one"""
    return (date.fromisoformat(date_key) - timedelta(days=1)).isoformat()


class Clock:
    """Supplies today's date key in the configured timezone"""

    def __init__(
        self,
        timezone: str = "UTC",
        now_func: Callable[[ZoneInfo], datetime] | None = None,
    ):
        self.timezone = ZoneInfo(timezone)
        self._now_func = now_func or (lambda tz: datetime.now(tz))

    def today(self) -> DateKey:
        """Current calendar date as an ISO date key"""
        return self._now_func(self.timezone).date().isoformat()

    def yesterday(self) -> DateKey:
        """Calendar date before today as an ISO date key"""
        return previous_day(self.today())


class FixedClock(Clock):
    """Clock pinned to a given date key, movable by whole days"""

    def __init__(self, date_key: DateKey):
        super().__init__()
        self._date = date.fromisoformat(date_key)

    def today(self) -> DateKey:
        return self._date.isoformat()

    def advance(self, days: int = 1) -> DateKey:
        """Move the pinned date forward and return the new date key"""
        self._date += timedelta(days=days)
        return self.today()
