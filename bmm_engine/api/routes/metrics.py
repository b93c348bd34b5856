"""Prometheus scrape endpoint for the stage transition and campaign job counters."""

from fastapi import APIRouter, Response

from bmm_engine.bootstrap.metrics import render_metrics

router = APIRouter(prefix="/v1", tags=["metrics"])


@router.get(
    "/metrics",
    summary="Prometheus metrics endpoint",
    response_class=Response,
    responses={200: {"content": {"text/plain": {}}}},
)
async def get_metrics() -> Response:
    body, content_type = render_metrics()
    return Response(content=body, media_type=content_type)
