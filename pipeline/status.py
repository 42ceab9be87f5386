"""
Process-local activity counters shown on the status view.

These are per-instance display values. They are not synchronized across
instances and tolerate lost updates under concurrent completions.
"""

from dataclasses import dataclass
from datetime import UTC, datetime


@dataclass(frozen=True)
class StatusSnapshot:
    """Point-in-time copy of the counters."""

    count: int
    last_at: datetime | None


class StatusTracker:
    """Counts messages handled by this instance and when the last one was."""

    def __init__(self) -> None:
        self._count = 0
        self._last_at: datetime | None = None

    @property
    def count(self) -> int:
        return self._count

    @property
    def last_at(self) -> datetime | None:
        return self._last_at

    def increment(self, at: datetime | None = None) -> None:
        """Record one more handled message."""
        self._count += 1
        self._last_at = at or datetime.now(UTC)

    def snapshot(self) -> StatusSnapshot:
        return StatusSnapshot(count=self._count, last_at=self._last_at)
