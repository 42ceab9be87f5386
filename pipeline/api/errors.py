"""
Mapping of pipeline errors to HTTP responses.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from pipeline.exceptions import EmptyPayloadError, PersistenceError, PublishError
from pipeline.types.api import ErrorResponse

logger = logging.getLogger(__name__)


class ServiceNotReady(Exception):
    """Raised for requests that arrive before bootstrap completed."""


def _error(status_code: int, error: str, detail: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, detail=detail)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def register_error_handlers(app: FastAPI) -> None:
    """Install the exception handlers on ``app``."""

    @app.exception_handler(EmptyPayloadError)
    async def empty_payload(request: Request, exc: EmptyPayloadError) -> JSONResponse:
        logger.warning("Request did not contain a message")
        return _error(status.HTTP_400_BAD_REQUEST, "empty_message", str(exc))

    @app.exception_handler(PersistenceError)
    async def persistence_failed(request: Request, exc: PersistenceError) -> JSONResponse:
        logger.error(f"Failed to handle new message due to error {exc}")
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "persistence_failed", str(exc))

    @app.exception_handler(PublishError)
    async def publish_failed(request: Request, exc: PublishError) -> JSONResponse:
        logger.error(f"Message stored but not published: {exc}")
        return _error(status.HTTP_502_BAD_GATEWAY, "publish_failed", str(exc))

    @app.exception_handler(RedisError)
    async def session_store_failed(request: Request, exc: RedisError) -> JSONResponse:
        logger.error(f"Session store error: {exc}")
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "session_store_unavailable", str(exc))

    @app.exception_handler(ServiceNotReady)
    async def not_ready(request: Request, exc: ServiceNotReady) -> JSONResponse:
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "not_ready", "Dependencies are still starting")
