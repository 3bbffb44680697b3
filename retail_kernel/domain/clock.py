"""
Injectable "today" for invoice and receipt dates.

Services default a missing invoice date, receipt date or report day from
the clock they were given, never from ``date.today()`` directly, so tests
and back-dated data entry can pin the calendar.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """Anything with ``now()`` (aware datetime) and ``today()``."""

    def now(self) -> datetime: ...

    def today(self) -> date: ...


class SystemClock:
    """Real time, in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def today(self) -> date:
        return self.now().date()


class DeterministicClock:
    """
    Clock frozen at a given instant until moved with ``advance``.

    Defaults to 2024-01-01 12:00 UTC.
    """

    def __init__(self, at: datetime | None = None):
        self._at = at or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._at

    def today(self) -> date:
        return self._at.date()

    def advance(self, *, days: int = 0, seconds: int = 0) -> None:
        """Move forward, e.g. ``advance(days=1)`` for the next trading day."""
        self._at += timedelta(days=days, seconds=seconds)
