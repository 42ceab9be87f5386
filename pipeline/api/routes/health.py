"""
Health check routes.
"""

from datetime import UTC, datetime

from fastapi import APIRouter, Request
from fastapi.responses import Response

from pipeline import __version__
from pipeline.observability.metrics import get_metrics
from pipeline.runtime import ServiceRuntime
from pipeline.types.api import HealthResponse

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health of the service and its database connection.",
)
async def health_check(request: Request) -> HealthResponse:
    """
    Perform a health check.

    Returns:
        HealthResponse with service status.
    """
    runtime: ServiceRuntime = request.app.state.runtime

    db_status = "unknown"
    if runtime.activity_log is not None:
        db_status = "healthy" if await runtime.activity_log.ping() else "unhealthy"

    return HealthResponse(
        status="healthy" if runtime.ready and db_status == "healthy" else "degraded",
        version=__version__,
        database=db_status,
        ready=runtime.ready,
        timestamp=datetime.now(UTC),
    )


@router.get(
    "/ready",
    summary="Readiness check",
    description="True once both queue and session store are connected.",
)
async def readiness_check(request: Request) -> dict:
    """
    Kubernetes readiness probe endpoint.

    Returns:
        Ready status.
    """
    return {"ready": request.app.state.runtime.ready}


@router.get(
    "/live",
    summary="Liveness check",
    description="Check if the service is alive.",
)
async def liveness_check() -> dict:
    """
    Kubernetes liveness probe endpoint.

    Returns:
        Alive status.
    """
    return {"alive": True}


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics.",
)
async def metrics() -> Response:
    """
    Expose Prometheus metrics.

    Returns:
        Prometheus-formatted metrics.
    """
    metrics_collector = get_metrics()
    return Response(
        content=metrics_collector.get_metrics(),
        media_type=metrics_collector.get_content_type(),
    )
