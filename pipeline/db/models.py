"""
SQLAlchemy database models.
Defines the append-only activity tables for both service roles.
"""

from sqlalchemy import BigInteger, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from pipeline.constants import (
    PROCESSED_MESSAGES_TABLE,
    SENT_MESSAGES_TABLE,
    ServiceRole,
)

# BIGSERIAL on PostgreSQL, rowid alias on SQLite
IdType = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class ActivityColumns:
    """
    Columns shared by every activity table.

    Rows are only ever inserted. Display ordering is by ``timestamp``
    (epoch milliseconds) descending.
    """

    id: Mapped[int] = mapped_column(
        IdType,
        primary_key=True,
        autoincrement=True,
    )
    timestamp: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        index=True,
    )
    processed_by: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    processed_by_color: Mapped[str] = mapped_column(
        String(8),
        nullable=False,
    )
    message: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )


class SentMessage(ActivityColumns, Base):
    """A message accepted and published by a sender instance."""

    __tablename__ = SENT_MESSAGES_TABLE

    def __repr__(self) -> str:
        return f"SentMessage(id={self.id}, by={self.processed_by}, ts={self.timestamp})"


class ProcessedMessage(ActivityColumns, Base):
    """A message successfully processed by a receiver instance."""

    __tablename__ = PROCESSED_MESSAGES_TABLE

    # Wall time of the simulated work in milliseconds
    time_taken: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )

    def __repr__(self) -> str:
        return (
            f"ProcessedMessage(id={self.id}, by={self.processed_by}, "
            f"ts={self.timestamp}, took={self.time_taken}ms)"
        )


ACTIVITY_MODELS: dict[ServiceRole, type[SentMessage] | type[ProcessedMessage]] = {
    ServiceRole.SENDER: SentMessage,
    ServiceRole.RECEIVER: ProcessedMessage,
}
