"""Fake Time implementation for testing."""

from datetime import UTC, datetime

from runkit.integrations.time.abc import Time

DEFAULT_FAKE_NOW = datetime(2025, 1, 1, tzinfo=UTC)


class FakeTime(Time):
    """Clock frozen at a fixed instant.

    This class has NO public setup methods. All state is provided via constructor.
    """

    def __init__(self, *, now: datetime | None = None) -> None:
        self._now = now if now is not None else DEFAULT_FAKE_NOW

    def now(self) -> datetime:
        return self._now
