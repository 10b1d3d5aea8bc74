"""Shared, deterministic timestamps for tests."""

from datetime import UTC, datetime, timedelta


# Fixed timestamp so stored timestamps and expiry checks are reproducible.
FIXED_NOW = datetime(2024, 3, 1, 12, 0, 0, tzinfo=UTC)


class FrozenClock:
    """Manually advanced clock usable wherever a ``() -> datetime`` is expected."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        """Move the clock forward by a ``timedelta(**kwargs)``."""
        self.now = self.now + timedelta(**kwargs)
