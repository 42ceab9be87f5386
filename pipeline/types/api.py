"""
API request and response type definitions.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from pipeline.constants import ServiceRole
from pipeline.types.activity import ActivityRecord


class SubmitMessageRequest(BaseModel):
    """Request body for submitting a message to the pipeline."""

    message: str = Field(..., description="Free-form message text")


class InstanceInfo(BaseModel):
    """Identity of the instance answering the request."""

    name: str
    color: str


class StatusView(BaseModel):
    """Recent activity and per-instance counters."""

    role: ServiceRole
    instance: InstanceInfo
    count: int = Field(..., description="Messages handled by this instance")
    last_at: datetime | None = Field(None, description="When this instance last handled one")
    session_messages: int = Field(0, description="Messages sent in the caller's session")
    active_sessions: int = 0
    records: list[ActivityRecord]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    database: str
    ready: bool
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    detail: str | None = None
