"""
Clock -- injectable time source.

Responsibility:
    Services that stamp ``last_updated``, ``started_at``, ``finished_at`` or
    ``resolved_at`` receive a Clock through their constructor instead of
    calling ``datetime.now()`` themselves.

Architecture position:
    Kernel > Domain -- pure, zero I/O (SystemClock is the one sanctioned
    read of wall-clock time).

Audit relevance:
    Every timestamp written to a stock record, transaction, movement, batch
    or alert is traceable to the Clock instance handed to the service, which
    makes ledger scenarios reproducible in tests.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Guarantees:
        - ``now()`` returns a timezone-aware ``datetime``.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...

    def today(self):
        """Current calendar date in the clock's timezone."""
        return self.now().date()


class SystemClock(Clock):
    """Production clock backed by the system time (UTC)."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    ``now()`` returns the same value on repeated calls until ``advance()``
    or ``set_time()`` is called.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(
            2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc
        )
        self._advance_seconds = 0

    def now(self) -> datetime:
        return self._fixed_time + timedelta(seconds=self._advance_seconds)

    def set_time(self, time: datetime) -> None:
        self._fixed_time = time
        self._advance_seconds = 0

    def advance(self, seconds: int = 1) -> None:
        self._advance_seconds += seconds

    def advance_days(self, days: int) -> None:
        self._advance_seconds += days * 86400
