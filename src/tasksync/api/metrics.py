"""Prometheus metrics endpoint.

Mounted at the root (/metrics), outside /api/v1, where scrapers expect it.
"""

from fastapi import APIRouter, Response

from tasksync.observability.metrics import get_metrics_content

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics():
    """Current metrics in Prometheus text format."""
    content, content_type = get_metrics_content()
    return Response(content=content, media_type=content_type)
