"""
Database module.
Contains database connection, models, and the activity log.
"""

from pipeline.db.connection import (
    close_db,
    create_schema,
    create_session_factory,
    get_engine,
    get_session_context,
    init_db,
)
from pipeline.db.models import ACTIVITY_MODELS, Base, ProcessedMessage, SentMessage
from pipeline.db.repository import ActivityLog, ActivityRepository

__all__ = [
    "get_session_context",
    "get_engine",
    "create_session_factory",
    "create_schema",
    "init_db",
    "close_db",
    "ACTIVITY_MODELS",
    "Base",
    "SentMessage",
    "ProcessedMessage",
    "ActivityLog",
    "ActivityRepository",
]
