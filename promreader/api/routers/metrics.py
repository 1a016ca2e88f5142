"""Metrics router exposing remote read metrics in Prometheus text format."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from promreader.api.dependencies import MetricsRegistry
from promreader.api.exceptions import NotFoundException

router = APIRouter(tags=["metrics"])


@router.get("/metrics", response_class=Response, summary="Read pipeline metrics")
async def metrics(registry: MetricsRegistry) -> Response:
    """Expose read request counters and histograms.

    Raises:
        NotFoundException: If metrics are disabled
    """
    if registry is None:
        raise NotFoundException("Metrics are disabled")

    return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)
