# backend/modules/kitchen/services/clock.py

"""
Time sources for the kitchen engine.

Nothing in the engine reads the wall clock directly; every service is handed
a ``Clock`` so tests and replays can drive time explicitly.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Return the current instant as a timezone-aware UTC datetime"""


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualClock(Clock):
    """Deterministic clock that only moves when told to, and only forward"""

    DEFAULT_START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __init__(self, start: Optional[datetime] = None):
        start = start or self.DEFAULT_START
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        self._now = start

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float = 0, minutes: float = 0) -> datetime:
        if seconds < 0 or minutes < 0:
            raise ValueError("ManualClock cannot move backwards")
        self._now = self._now + timedelta(seconds=seconds, minutes=minutes)
        return self._now

    def set(self, instant: datetime) -> datetime:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        if instant < self._now:
            raise ValueError(
                f"ManualClock cannot move backwards from {self._now.isoformat()} "
                f"to {instant.isoformat()}"
            )
        self._now = instant
        return self._now
