"""Cache metrics endpoints.

/v1/metrics returns the JSON snapshot; /metrics serves the same counters in
the Prometheus text exposition format.
"""

from fastapi import APIRouter, Request
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST
from starlette.concurrency import run_in_threadpool

from promptcache.infrastructure.monitoring.metrics import CacheMetrics, MetricsSnapshot

router = APIRouter(tags=["metrics"])


@router.get(
    "/v1/metrics",
    response_model=MetricsSnapshot,
    summary="Cache metrics",
)
async def get_metrics(request: Request) -> MetricsSnapshot:
    """Hit/miss/eviction counters, stored vector count and hit rate."""
    metrics: CacheMetrics = request.app.state.metrics
    return await run_in_threadpool(metrics.snapshot)


@router.get("/metrics", include_in_schema=False)
async def prometheus_metrics(request: Request) -> Response:
    """Prometheus scrape endpoint."""
    metrics: CacheMetrics = request.app.state.metrics
    content = await run_in_threadpool(metrics.render)
    return Response(content=content, media_type=CONTENT_TYPE_LATEST)
