"""
FastAPI application entry point for both service roles.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from pipeline import __version__
from pipeline.api.errors import register_error_handlers
from pipeline.api.routes import health_router, messages_router, received_router, sessions_router
from pipeline.config import get_settings
from pipeline.constants import ServiceRole
from pipeline.observability.logging import setup_logging
from pipeline.observability.metrics import setup_metrics
from pipeline.observability.tracing import instrument_fastapi, setup_tracing
from pipeline.runtime import ServiceRuntime

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Blocks startup until the queue and session store are both reachable.
    """
    runtime: ServiceRuntime = app.state.runtime

    # Startup
    setup_logging(runtime.identity, runtime.role)
    setup_metrics()
    setup_tracing()
    await runtime.start()

    logger.info("Application started", extra={"role": runtime.role.value})

    yield

    # Shutdown
    await runtime.stop()
    logger.info("Application shutdown")


def create_app(runtime: ServiceRuntime | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        runtime: Runtime to serve. Defaults to one built from settings.

    Returns:
        FastAPI: The configured application instance.
    """
    runtime = runtime or ServiceRuntime()

    app = FastAPI(
        title=f"Pipeline {runtime.role.value.title()} API",
        description="Durable-queue delivery pipeline with simulated failing consumers",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.runtime = runtime

    register_error_handlers(app)

    app.include_router(health_router)
    app.include_router(sessions_router)
    if runtime.role is ServiceRole.SENDER:
        app.include_router(messages_router)
    else:
        app.include_router(received_router)

    instrument_fastapi(app)

    return app


def run(role: ServiceRole | None = None) -> None:
    """Run the API server for ``role`` (defaults to SERVICE_ROLE)."""
    settings = get_settings()
    app = create_app(ServiceRuntime(settings, role=role))

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


def run_sender() -> None:
    """Run a sender instance."""
    run(ServiceRole.SENDER)


def run_receiver() -> None:
    """Run a receiver instance."""
    run(ServiceRole.RECEIVER)


if __name__ == "__main__":
    run()
