"""
Injectable time source.

Services never call ``datetime.now()`` directly: ledger ``occurred_at``,
receipt ``received_at``, replacement confirmation and voucher ``paid_at``
timestamps all come from the ``Clock`` handed to the service, so tests
can pin them.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

# Default start of a DeterministicClock
EPOCH = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone-aware."""

    def now_utc(self) -> datetime:
        return self.now().astimezone(timezone.utc)


class SystemClock(Clock):
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    ``now()`` is stable between calls; ``advance()`` and ``tick()`` move it
    forward, ``set_time()`` jumps to an absolute time.
    """

    def __init__(self, start: datetime | None = None):
        self._current = start or EPOCH

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        self._current = time

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def tick(self) -> datetime:
        """Advance one second and return the new time."""
        self.advance(1)
        return self._current
