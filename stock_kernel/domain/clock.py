"""
Clock -- Injectable time source.

Services resolve reporting windows ("the last 7 days") through a Clock
instead of calling ``datetime.now()``.  Engines never read time.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timezone


class Clock(ABC):
    """Source of the current instant, always timezone-aware UTC."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        """Current UTC calendar date."""
        return self.now().date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock frozen at one instant, for tests and for ``--as-of`` report runs.

    A naive ``fixed_time`` is taken to be UTC; an aware one is converted.
    """

    def __init__(self, fixed_time: datetime):
        if fixed_time.tzinfo is None:
            fixed_time = fixed_time.replace(tzinfo=timezone.utc)
        self._fixed_time = fixed_time.astimezone(timezone.utc)

    def now(self) -> datetime:
        return self._fixed_time
