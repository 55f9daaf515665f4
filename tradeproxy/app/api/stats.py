"""Stat definition endpoints, served through the TTL cache."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from tradeproxy.app.api.dependencies import get_orchestrator
from tradeproxy.app.services.fetch_orchestrator import FetchOrchestrator, FetchResult

router = APIRouter()


def _cached_response(result: FetchResult) -> JSONResponse:
    return JSONResponse(
        content=result.data,
        headers={"X-Cache": result.cache_status.header_value},
    )


@router.get("/api/poe/stats")
async def poe1_stats(
    orchestrator: FetchOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """PoE1 stat definitions. Stale data is served while the upstream fails."""
    return _cached_response(await orchestrator.get_stats("poe1"))


@router.get("/api/poe2/stats")
async def poe2_stats(
    orchestrator: FetchOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """PoE2 stat definitions. Stale data is served while the upstream fails."""
    return _cached_response(await orchestrator.get_stats("poe2"))
