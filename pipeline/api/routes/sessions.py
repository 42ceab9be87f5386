"""
Session routes.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response

from pipeline.api.dependencies import get_runtime, new_session_id
from pipeline.constants import SESSION_COOKIE_NAME
from pipeline.runtime import ServiceRuntime

router = APIRouter(tags=["Sessions"])


@router.get(
    "/reset-session",
    summary="Reset session",
    description="Forget the caller's message counter and start a new session.",
)
async def reset_session(
    request: Request,
    response: Response,
    runtime: Annotated[ServiceRuntime, Depends(get_runtime)],
) -> dict:
    old_session_id = request.cookies.get(SESSION_COOKIE_NAME)
    if old_session_id:
        await runtime.sessions.reset(old_session_id)

    session_id = new_session_id()
    await runtime.sessions.touch(session_id)
    response.set_cookie(
        SESSION_COOKIE_NAME,
        session_id,
        max_age=runtime.settings.session_ttl_seconds,
        httponly=True,
    )
    return {"reset": True}
