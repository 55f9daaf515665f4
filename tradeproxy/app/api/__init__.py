"""API endpoints package for the proxy."""

from tradeproxy.app.api.health import router as health_router
from tradeproxy.app.api.metrics import router as metrics_router
from tradeproxy.app.api.search import router as search_router
from tradeproxy.app.api.stats import router as stats_router

__all__ = [
    "health_router",
    "metrics_router",
    "search_router",
    "stats_router",
]
