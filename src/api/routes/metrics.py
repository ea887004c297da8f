"""
Metrics endpoint - Prometheus text exposition
"""

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST

from api.dependencies import get_metrics
from metrics.context import MetricsContext

router = APIRouter(tags=["Metrics"])


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics_endpoint(metrics: MetricsContext = Depends(get_metrics)) -> Response:
    return Response(content=metrics.render(), media_type=CONTENT_TYPE_LATEST)
