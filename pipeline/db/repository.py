"""
Activity log data access.

Rows are appended and read back newest first. Nothing in the service
updates or deletes them.
"""

import logging
from datetime import UTC, datetime
from typing import Sequence

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pipeline.constants import ServiceRole
from pipeline.db.connection import get_session_context
from pipeline.db.models import ACTIVITY_MODELS, ProcessedMessage, SentMessage
from pipeline.exceptions import PersistenceError
from pipeline.identity import InstanceIdentity
from pipeline.types.activity import ActivityRecord, epoch_millis

logger = logging.getLogger(__name__)


class ActivityRepository:
    """
    Repository for the activity table of one role.

    Works inside a caller-provided session; committing is the caller's job.
    """

    def __init__(self, session: AsyncSession, role: ServiceRole):
        """
        Initialize the repository with a database session.

        Args:
            session: The async database session.
            role: Selects the sent or processed messages table.
        """
        self._session = session
        self._role = role
        self._model = ACTIVITY_MODELS[role]

    async def append(
        self,
        message: str,
        identity: InstanceIdentity,
        timestamp: int,
        time_taken: int | None = None,
    ) -> SentMessage | ProcessedMessage:
        """
        Insert one activity row.

        Args:
            message: The payload copy.
            identity: Instance that handled the message.
            timestamp: Epoch milliseconds.
            time_taken: Processing time in milliseconds (receiver only).

        Returns:
            The inserted row with its generated id.
        """
        values = {
            "timestamp": timestamp,
            "processed_by": identity.name,
            "processed_by_color": identity.color,
            "message": message,
        }
        if self._role is ServiceRole.RECEIVER:
            values["time_taken"] = time_taken or 0

        row = self._model(**values)
        self._session.add(row)
        await self._session.flush()
        return row

    async def recent(self, limit: int) -> Sequence[SentMessage | ProcessedMessage]:
        """
        Fetch the newest rows.

        Args:
            limit: Maximum number of rows.

        Returns:
            Rows ordered by timestamp descending, id descending on ties.
        """
        if limit <= 0:
            return []

        stmt = (
            select(self._model)
            .order_by(self._model.timestamp.desc(), self._model.id.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()


class ActivityLog:
    """
    Append-only activity log for one role.

    Each call runs in its own short transaction. Driver failures surface
    as PersistenceError.
    """

    def __init__(
        self,
        role: ServiceRole,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        self.role = role
        self._session_factory = session_factory

    async def append(
        self,
        message: str,
        identity: InstanceIdentity,
        at: datetime | None = None,
        time_taken: int | None = None,
    ) -> ActivityRecord:
        """
        Persist one activity record.

        Args:
            message: The payload copy.
            identity: Instance that handled the message.
            at: When it happened. Defaults to now.
            time_taken: Processing time in milliseconds (receiver only).

        Returns:
            The stored ActivityRecord.

        Raises:
            PersistenceError: If the insert fails.
        """
        timestamp = epoch_millis(at or datetime.now(UTC))
        try:
            async with get_session_context(self._session_factory) as session:
                row = await ActivityRepository(session, self.role).append(
                    message=message,
                    identity=identity,
                    timestamp=timestamp,
                    time_taken=time_taken,
                )
                record = ActivityRecord.model_validate(row)
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(f"Failed to store {self.role} activity: {e}") from e

        logger.debug(
            "Stored activity record",
            extra={"record_id": record.id, "role": self.role.value},
        )
        return record

    async def recent(self, limit: int) -> list[ActivityRecord]:
        """
        Return at most ``limit`` records, newest first.

        Raises:
            PersistenceError: If the query fails.
        """
        try:
            async with get_session_context(self._session_factory) as session:
                rows = await ActivityRepository(session, self.role).recent(limit)
                return [ActivityRecord.model_validate(row) for row in rows]
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(f"Failed to read {self.role} activity: {e}") from e

    async def ping(self) -> bool:
        """Check that the store answers a trivial query."""
        try:
            async with get_session_context(self._session_factory) as session:
                await session.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError):
            return False
