"""Trade search endpoints: gated search followed by a gated detail fetch."""

from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from tradeproxy.app.api.dependencies import get_metrics, get_orchestrator
from tradeproxy.app.core.metrics import ProxyMetrics
from tradeproxy.app.services.fetch_orchestrator import FetchOrchestrator, SearchResult

router = APIRouter()


class SearchRequest(BaseModel):
    """Search body. ``query`` and ``sort`` are forwarded to the trade API as-is.

    The body and ``query`` are optional here so a missing query is reported
    as a 400 by the orchestrator rather than a 422 by request validation.
    """
    league: Optional[str] = None
    query: Optional[Any] = None
    sort: Optional[Any] = None
    limit: Optional[int] = None


def _search_response(result: SearchResult) -> dict[str, Any]:
    return {
        "searchId": result.search_id,
        "league": result.league,
        "total": result.total,
        "items": result.items,
    }


async def _search(
    game: str,
    body: Optional[SearchRequest],
    orchestrator: FetchOrchestrator,
    metrics: ProxyMetrics,
) -> dict[str, Any]:
    metrics.record_search()
    if body is None:
        body = SearchRequest()
    result = await orchestrator.search(
        game,
        query=body.query,
        league=body.league,
        sort=body.sort,
        limit=body.limit,
    )
    return _search_response(result)


@router.post("/api/poe/search")
async def poe1_search(
    body: Optional[SearchRequest] = None,
    orchestrator: FetchOrchestrator = Depends(get_orchestrator),
    metrics: ProxyMetrics = Depends(get_metrics),
) -> dict[str, Any]:
    """Search PoE1 trade listings."""
    return await _search("poe1", body, orchestrator, metrics)


@router.post("/api/poe2/search")
async def poe2_search(
    body: Optional[SearchRequest] = None,
    orchestrator: FetchOrchestrator = Depends(get_orchestrator),
    metrics: ProxyMetrics = Depends(get_metrics),
) -> dict[str, Any]:
    """Search PoE2 trade listings."""
    return await _search("poe2", body, orchestrator, metrics)
