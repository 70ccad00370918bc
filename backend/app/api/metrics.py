"""Prometheus scrape endpoint for the relay metrics."""

from fastapi import APIRouter, Response

from app.monitoring.registry import registry


router = APIRouter(tags=["metrics"])


@router.get("/metrics", response_class=Response)
def export_metrics() -> Response:
    """Render relay counters and connection gauges in the text exposition format."""

    return Response(content=registry.render(), media_type="text/plain; version=0.0.4")
