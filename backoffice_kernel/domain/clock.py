"""
Injectable time source.

Services never call ``datetime.now()`` themselves: every workflow timestamp
(``submitted_at``, ``approved_at``, ``paid_at``, workflow log rows) and the
month segment of document numbers come from the Clock they were built with.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone-aware."""


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Fixed clock for tests, 2024-01-15 09:00 UTC unless told otherwise.

    ``now()`` repeats the same instant until ``set_time()`` moves
    it, so numbering months and log timestamps are predictable.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._now = fixed_time or datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def set_time(self, time: datetime) -> None:
        self._now = time
