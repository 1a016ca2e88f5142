"""Health check router for promreader API.

``/health`` answers as soon as the process is up; ``/health/ready`` only once
the store reader and the remote read handler exist, so load balancers do not
route Prometheus queries to a starting instance.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Request, status
from pydantic import BaseModel

from promreader import __version__
from promreader.api.exceptions import ServiceUnavailableException

router = APIRouter(prefix="/health", tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    timestamp: datetime
    version: str


class ReadinessResponse(HealthResponse):
    """Readiness response describing the read pipeline."""

    components: dict[str, str]


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness check",
)
async def health_check() -> HealthResponse:
    """Report that the process is serving HTTP.

    Example:
        GET /health
        {"status": "healthy", "timestamp": "...", "version": "0.1.0"}
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=__version__,
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
)
async def readiness_check(request: Request) -> ReadinessResponse:
    """Report whether remote reads can be served.

    Example:
        GET /health/ready
        {
            "status": "ready",
            "components": {
                "store": "DuckDBReader",
                "series_identity": "values",
                "timestamp_policy": "strict",
                "metrics": "enabled"
            },
            ...
        }

    Raises:
        ServiceUnavailableException: If the read handler is not initialized
    """
    state = request.app.state
    handler = getattr(state, "read_handler", None)
    if handler is None:
        raise ServiceUnavailableException("Store reader not initialized")

    return ReadinessResponse(
        status="ready",
        timestamp=datetime.now(timezone.utc),
        version=__version__,
        components={
            "store": type(handler.reader).__name__,
            "series_identity": handler.grouper.identity,
            "timestamp_policy": handler.grouper.timestamp_policy,
            "metrics": "enabled" if state.metrics_registry is not None else "disabled",
        },
    )
