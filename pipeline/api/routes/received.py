"""
Receiver routes.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from pipeline.api.dependencies import build_status_view, get_runtime, get_session_id
from pipeline.runtime import ServiceRuntime
from pipeline.types.api import StatusView

router = APIRouter(tags=["Receiver"])


@router.get(
    "/received",
    response_model=StatusView,
    summary="Recently processed messages",
)
async def list_received(
    runtime: Annotated[ServiceRuntime, Depends(get_runtime)],
    session_id: Annotated[str, Depends(get_session_id)],
) -> StatusView:
    """Return the newest processed records and this instance's counters."""
    return await build_status_view(runtime, session_id)
