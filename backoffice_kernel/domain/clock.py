"""
Injectable time source.

The invoice wizard defaults its invoice and due dates from "today", and
payment dates default the same way.  Services take a ``Clock`` in their
constructor rather than calling ``date.today()``, so tests can pin the
calendar with a ``DeterministicClock``.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone

_DEFAULT_FIXED_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Source of the current time.  ``now()`` is always timezone-aware."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        """Calendar date of ``now()`` in its own timezone."""
        return self.now().date()


class SystemClock(Clock):
    """Wall-clock time in the machine's local timezone."""

    def now(self) -> datetime:
        return datetime.now().astimezone()


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    ``now()`` keeps returning the same instant until ``advance()``,
    ``advance_days()`` or ``set_time()`` changes it.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or _DEFAULT_FIXED_TIME

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        self._current = time

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def advance_days(self, days: int = 1) -> None:
        self._current += timedelta(days=days)
