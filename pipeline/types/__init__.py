"""
Type definitions for the pipeline.
Contains input/output type definitions grouped by module.
"""

from pipeline.types.activity import ActivityRecord, epoch_millis
from pipeline.types.api import (
    ErrorResponse,
    HealthResponse,
    InstanceInfo,
    StatusView,
    SubmitMessageRequest,
)

__all__ = [
    # API types
    "SubmitMessageRequest",
    "InstanceInfo",
    "StatusView",
    "HealthResponse",
    "ErrorResponse",
    # Activity types
    "ActivityRecord",
    "epoch_millis",
]
