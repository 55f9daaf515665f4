"""Upstream access services: rate gate, trade API client and orchestration."""

from tradeproxy.app.services.fetch_orchestrator import (
    CacheStatus,
    FetchOrchestrator,
    FetchResult,
    SearchResult,
)
from tradeproxy.app.services.rate_gate import BackoffPolicy, RateGate
from tradeproxy.app.services.upstream import TradeApiClient, UpstreamResponse

__all__ = [
    "BackoffPolicy",
    "CacheStatus",
    "FetchOrchestrator",
    "FetchResult",
    "RateGate",
    "SearchResult",
    "TradeApiClient",
    "UpstreamResponse",
]
