"""
Activity record type definitions.
"""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict


class ActivityRecord(BaseModel):
    """
    One persisted row of the activity log.

    ``time_taken`` is only present for records written by a receiver.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    timestamp: int
    time_taken: int | None = None
    processed_by: str
    processed_by_color: str
    message: str | None = None

    @property
    def recorded_at(self) -> datetime:
        """The timestamp as an aware UTC datetime."""
        return datetime.fromtimestamp(self.timestamp / 1000, tz=UTC)


def epoch_millis(at: datetime) -> int:
    """Convert a datetime to integer epoch milliseconds."""
    return int(at.timestamp() * 1000)
