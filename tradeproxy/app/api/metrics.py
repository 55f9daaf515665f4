"""Prometheus-compatible metrics endpoint."""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from tradeproxy.app.api.dependencies import get_metrics
from tradeproxy.app.core.metrics import ProxyMetrics

router = APIRouter()


@router.get("/metrics", response_class=PlainTextResponse)
async def metrics_endpoint(metrics: ProxyMetrics = Depends(get_metrics)) -> str:
    return metrics.to_prometheus()
