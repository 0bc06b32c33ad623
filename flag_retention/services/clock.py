# flag_retention/services/clock.py
"""Time source for retention decisions."""

from abc import ABC, abstractmethod
from datetime import UTC, datetime


class Clock(ABC):
    """Anything that can say what time it is."""

    @abstractmethod
    def now(self) -> datetime:
        """Current time as a naive UTC datetime (matches the DateTime columns)."""
        pass


class SystemClock(Clock):
    """Wall clock."""

    def now(self) -> datetime:
        return datetime.now(UTC).replace(tzinfo=None)
