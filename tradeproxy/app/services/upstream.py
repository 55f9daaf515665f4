"""Client for the Path of Exile trade API.

The client only issues requests and decodes bodies. Non-2xx statuses are
returned to the caller as an ``UpstreamResponse``; transport failures and
undecodable bodies raise ``UpstreamUnreachableError``.
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence
from urllib.parse import quote

import httpx

from tradeproxy.app.core.logging import get_log_context, get_logger
from tradeproxy.app.exceptions import UpstreamUnreachableError

logger = get_logger(__name__)

# Game version -> trade API path segment
GAME_API_PATHS = {
    "poe1": "trade",
    "poe2": "trade2",
}


@dataclass
class UpstreamResponse:
    """Status and decoded JSON body of an upstream response.

    ``body`` is only decoded for successful responses.
    """

    status_code: int
    body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def blocked(self) -> bool:
        return self.status_code == 403


def api_path(game: str) -> str:
    try:
        return GAME_API_PATHS[game]
    except KeyError:
        raise ValueError(
            f"Unsupported game: {game}. Supported: {sorted(GAME_API_PATHS)}"
        ) from None


class TradeApiClient:
    """Thin wrapper over a shared ``httpx.AsyncClient``.

    The AsyncClient carries the upstream base URL and the fixed User-Agent
    (see ``core.http_client.create_http_client``).
    """

    def __init__(self, http_client: httpx.AsyncClient):
        self._http = http_client

    async def get_stats(self, game: str) -> UpstreamResponse:
        """GET the stat definitions of a game version."""
        return await self._request("GET", f"/api/{api_path(game)}/data/stats")

    async def search(
        self,
        game: str,
        league: str,
        query: Any,
        sort: Optional[Any] = None,
    ) -> UpstreamResponse:
        """POST a trade search. The body is ``{"id", "result", "total"}``."""
        url = f"/api/{api_path(game)}/search/{quote(league, safe='')}"
        return await self._request("POST", url, json={"query": query, "sort": sort})

    async def fetch(
        self,
        game: str,
        item_ids: Sequence[str],
        search_id: str,
    ) -> UpstreamResponse:
        """GET listing details for result ids of a previous search."""
        url = f"/api/{api_path(game)}/fetch/{','.join(item_ids)}"
        return await self._request("GET", url, params={"query": search_id})

    async def _request(self, method: str, url: str, **kwargs: Any) -> UpstreamResponse:
        logger.info(f"Fetching upstream: {method} {url}")
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(
                f"Upstream request failed: {method} {url}: {type(e).__name__}: {e}"
            )
            raise UpstreamUnreachableError(f"PoE API request failed: {e}") from e

        if not response.is_success:
            logger.warning(
                f"Upstream returned {response.status_code}: {method} {url}",
                extra=get_log_context(upstream_status=response.status_code),
            )
            return UpstreamResponse(status_code=response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamUnreachableError(f"PoE API returned an invalid body: {e}") from e
        return UpstreamResponse(status_code=response.status_code, body=body)
