"""Service info and health check routes."""

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Request

from tradeproxy.app.api.dependencies import get_metrics
from tradeproxy.app.core.metrics import ProxyMetrics

router = APIRouter()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/")
async def root(
    request: Request, metrics: ProxyMetrics = Depends(get_metrics)
) -> dict[str, Any]:
    """Service info with request counters and the endpoint list."""
    return {
        "status": "ok",
        "service": request.app.state.config.service_name,
        "timestamp": _now_iso(),
        "stats": metrics.snapshot(),
        "endpoints": {
            "stats": "GET /api/poe/stats",
            "statsPoe2": "GET /api/poe2/stats",
            "search": "POST /api/poe/search",
            "searchPoe2": "POST /api/poe2/search",
        },
    }


@router.get("/health")
async def health(metrics: ProxyMetrics = Depends(get_metrics)) -> dict[str, Any]:
    """Lightweight liveness check, no upstream calls."""
    return {
        "status": "healthy",
        "uptime": round(metrics.uptime_seconds, 3),
        "timestamp": _now_iso(),
    }
