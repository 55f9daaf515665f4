"""FastAPI dependencies shared by the routers."""

from fastapi import Request

from tradeproxy.app.core.metrics import ProxyMetrics
from tradeproxy.app.services.fetch_orchestrator import FetchOrchestrator


def get_orchestrator(request: Request) -> FetchOrchestrator:
    """Orchestrator built in the application lifespan."""
    return request.app.state.orchestrator


def get_metrics(request: Request) -> ProxyMetrics:
    return request.app.state.metrics
