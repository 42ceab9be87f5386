"""
Sender routes: submit a message and view what this sender has sent.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status

from pipeline.api.dependencies import build_status_view, get_runtime, get_session_id
from pipeline.runtime import ServiceRuntime
from pipeline.types.activity import ActivityRecord
from pipeline.types.api import ErrorResponse, StatusView, SubmitMessageRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["Sender"])

Runtime = Annotated[ServiceRuntime, Depends(get_runtime)]
SessionId = Annotated[str, Depends(get_session_id)]


@router.post(
    "",
    response_model=ActivityRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a message",
    description="Record the message and publish it to the durable queue.",
    responses={
        400: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def submit_message(
    request: SubmitMessageRequest,
    runtime: Runtime,
    session_id: SessionId,
) -> ActivityRecord:
    """
    Submit a message.

    A blank message is rejected before anything is stored or published.
    A failed publish still leaves the sent record behind.

    Args:
        request: Message submission body.
        runtime: Service runtime.
        session_id: Caller's session.

    Returns:
        The stored sent record.
    """
    logger.debug("Submit request received", extra={"length": len(request.message)})
    record = await runtime.producer.submit(request.message)
    await runtime.sessions.increment_messages(session_id)
    return record


@router.get(
    "",
    response_model=StatusView,
    summary="Recently sent messages",
)
async def list_sent(runtime: Runtime, session_id: SessionId) -> StatusView:
    """Return the newest sent records and this instance's counters."""
    return await build_status_view(runtime, session_id)
