"""
Request-scoped accessors shared by the routers.
"""

from uuid import uuid4

from fastapi import Request, Response

from pipeline.api.errors import ServiceNotReady
from pipeline.constants import SESSION_COOKIE_NAME
from pipeline.runtime import ServiceRuntime
from pipeline.types.api import InstanceInfo, StatusView


def get_runtime(request: Request) -> ServiceRuntime:
    """Return the runtime, refusing service until bootstrap has finished."""
    runtime: ServiceRuntime = request.app.state.runtime
    if not runtime.ready:
        raise ServiceNotReady()
    return runtime


def new_session_id() -> str:
    return uuid4().hex


async def get_session_id(
    request: Request,
    response: Response,
) -> str:
    """
    Resolve the caller's session, creating one if the cookie is missing.

    The cookie and the store entry both get their expiry pushed forward.
    """
    runtime = get_runtime(request)
    session_id = request.cookies.get(SESSION_COOKIE_NAME) or new_session_id()
    await runtime.sessions.touch(session_id)
    response.set_cookie(
        SESSION_COOKIE_NAME,
        session_id,
        max_age=runtime.settings.session_ttl_seconds,
        httponly=True,
    )
    return session_id


async def build_status_view(runtime: ServiceRuntime, session_id: str) -> StatusView:
    """Assemble the recent-activity view for this instance."""
    records = await runtime.activity_log.recent(runtime.settings.activity_recent_limit)
    snapshot = runtime.status.snapshot()

    return StatusView(
        role=runtime.role,
        instance=InstanceInfo(name=runtime.identity.name, color=runtime.identity.color),
        count=snapshot.count,
        last_at=snapshot.last_at,
        session_messages=await runtime.sessions.get_messages(session_id),
        active_sessions=await runtime.sessions.count_active(),
        records=records,
    )
