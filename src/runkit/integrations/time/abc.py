"""Clock abstraction for testing.

Auto-update gating compares epochs against stored last-check values; a
fixed clock keeps those tests deterministic.
"""

from abc import ABC, abstractmethod
from datetime import datetime


class Time(ABC):
    """Abstract clock operations for dependency injection."""

    @abstractmethod
    def now(self) -> datetime:
        """Current time as a timezone-aware UTC datetime."""
        ...

    def epoch_seconds(self) -> int:
        """Current time as whole seconds since the epoch."""
        return int(self.now().timestamp())
