"""Read-through cache with rate-limited refresh and stale fallback.

Cache-eligible resources (stat definitions) are served from the TTL cache
while fresh. On a miss the request passes the rate gate and goes upstream; a
success is written through to the cache, a failure falls back to the stale
entry when one exists. Searches are gated but never cached.

Cache key lifecycle: EMPTY -> FRESH -> STALE -> FRESH. A failed refresh of a
STALE entry leaves it STALE.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional

from tradeproxy.app.core.cache import TtlCache
from tradeproxy.app.core.config import Settings, settings as default_settings
from tradeproxy.app.core.logging import get_log_context, get_logger
from tradeproxy.app.core.metrics import ProxyMetrics
from tradeproxy.app.exceptions import (
    QueryRequiredError,
    UpstreamBlockedError,
    UpstreamRejectedError,
    UpstreamUnreachableError,
)
from tradeproxy.app.services.rate_gate import BackoffPolicy, RateGate
from tradeproxy.app.services.upstream import TradeApiClient, UpstreamResponse

logger = get_logger(__name__)

SEARCH_ROUTE = "search"
FETCH_ROUTE = "fetch"


class CacheStatus(str, Enum):
    """How an orchestrated result was obtained."""

    HIT = "HIT"
    MISS = "MISS"
    STALE_BLOCKED = "STALE_BLOCKED"
    STALE_ERROR = "STALE_ERROR"
    STALE_EXCEPTION = "STALE_EXCEPTION"

    @property
    def is_stale(self) -> bool:
        return self.value.startswith("STALE")

    @property
    def header_value(self) -> str:
        """Value of the X-Cache response header."""
        return "STALE" if self.is_stale else self.value


@dataclass
class FetchResult:
    data: Any
    cache_status: CacheStatus
    fetched_at: float


@dataclass
class SearchResult:
    search_id: Optional[str]
    league: str
    total: Optional[int]
    items: List[Any] = field(default_factory=list)


def stats_cache_key(game: str) -> str:
    return f"stats:{game}"


def result_limit(limit: Optional[int], max_items: int = 10) -> int:
    """Number of search result ids to fetch details for.

    A missing or zero limit means ``max_items``; the result is clamped to
    ``[1, max_items]``.
    """
    return min(max(1, limit or max_items), max_items)


def _rejection_for(response: UpstreamResponse) -> UpstreamRejectedError:
    if response.blocked:
        return UpstreamBlockedError()
    return UpstreamRejectedError(response.status_code)


def _query_missing(query: Any) -> bool:
    """True for an absent or blank query. Empty objects and lists are valid."""
    if query is None:
        return True
    if isinstance(query, (dict, list)):
        return False
    return not query


def _json_object(response: UpstreamResponse, step: str) -> dict:
    """Body of a successful search or fetch response, which must be an object."""
    if response.body is None:
        return {}
    if not isinstance(response.body, dict):
        raise UpstreamUnreachableError(f"PoE API returned an invalid {step} body")
    return response.body


class FetchOrchestrator:
    """Composes the rate gate, the TTL cache and the trade API client.

    The gate and cache are owned by the orchestrator instance; build one per
    application (see ``main.create_app``) or per test.
    """

    def __init__(
        self,
        client: TradeApiClient,
        gate: Optional[RateGate] = None,
        cache: Optional[TtlCache] = None,
        config: Optional[Settings] = None,
        metrics: Optional[ProxyMetrics] = None,
    ):
        self.config = config if config is not None else default_settings
        self.client = client
        self.gate = gate if gate is not None else RateGate(
            backoff=BackoffPolicy(
                enabled=self.config.gate_backoff_enabled,
                exponential_base=self.config.gate_backoff_base,
                max_delay=self.config.gate_backoff_max_delay_seconds,
            )
        )
        self.cache = cache if cache is not None else TtlCache()
        self.metrics = metrics if metrics is not None else ProxyMetrics()

    async def _gated(
        self,
        route_class: str,
        min_delay: float,
        call: Callable[[], Awaitable[UpstreamResponse]],
    ) -> UpstreamResponse:
        """Pass the gate, issue the call and report the outcome to the gate."""
        waited = await self.gate.acquire_and_stamp(route_class, min_delay)
        self.metrics.record_gate_wait(route_class, waited)
        try:
            response = await call()
        except UpstreamUnreachableError:
            self.gate.record_failure(route_class)
            self.metrics.record_upstream_failure("unreachable")
            raise
        if response.ok:
            self.gate.record_success(route_class)
        else:
            self.gate.record_failure(route_class)
            self.metrics.record_upstream_failure(
                "blocked" if response.blocked else "rejected"
            )
        return response

    async def fetch_cached(
        self,
        key: str,
        route_class: str,
        ttl: float,
        min_delay: float,
        call: Callable[[], Awaitable[UpstreamResponse]],
    ) -> FetchResult:
        """Serve ``key`` from cache, refreshing through the gate when stale.

        Raises:
            UpstreamBlockedError: Upstream answered 403 and nothing is cached
            UpstreamRejectedError: Upstream answered another non-2xx status
                and nothing is cached
            UpstreamUnreachableError: The call raised and nothing is cached
        """
        entry = self.cache.read_fresh(key, ttl)
        if entry is not None:
            return self._result(key, entry.data, entry.timestamp, CacheStatus.HIT)

        try:
            response = await self._gated(route_class, min_delay, call)
        except UpstreamUnreachableError:
            stale = self.cache.read_stale(key)
            if stale is None:
                raise
            return self._result(key, stale.data, stale.timestamp, CacheStatus.STALE_EXCEPTION)

        if response.ok:
            entry = self.cache.write(key, response.body)
            return self._result(key, entry.data, entry.timestamp, CacheStatus.MISS)

        stale = self.cache.read_stale(key)
        if stale is None:
            raise _rejection_for(response)
        status = CacheStatus.STALE_BLOCKED if response.blocked else CacheStatus.STALE_ERROR
        return self._result(
            key, stale.data, stale.timestamp, status, upstream_status=response.status_code
        )

    def _result(
        self,
        key: str,
        data: Any,
        fetched_at: float,
        status: CacheStatus,
        upstream_status: Optional[int] = None,
    ) -> FetchResult:
        self.metrics.record_cache(status.value)
        context = get_log_context(
            cache_key=key, cache_status=status.value, upstream_status=upstream_status
        )
        if status.is_stale:
            logger.warning(f"Returning stale cache for {key} ({status.value})", extra=context)
        else:
            logger.info(f"Cache {status.value.lower()} for {key}", extra=context)
        return FetchResult(data=data, cache_status=status, fetched_at=fetched_at)

    async def get_stats(self, game: str) -> FetchResult:
        """Stat definitions of a game version, cached for the stats TTL."""
        key = stats_cache_key(game)
        route_class = f"stats:{game}"
        return await self.fetch_cached(
            key=key,
            route_class=route_class,
            ttl=self.config.stats_cache_ttl_seconds,
            min_delay=self.config.min_delay_for(route_class),
            call=lambda: self.client.get_stats(game),
        )

    async def search(
        self,
        game: str,
        query: Any,
        league: Optional[str] = None,
        sort: Optional[Any] = None,
        limit: Optional[int] = None,
    ) -> SearchResult:
        """Run a trade search and fetch listing details for its first results.

        Both upstream calls are gated; nothing is cached and failures
        propagate without fallback.

        Raises:
            QueryRequiredError: ``query`` is missing, before any gate or
                upstream interaction
            UpstreamBlockedError, UpstreamRejectedError,
            UpstreamUnreachableError: Either upstream call failed
        """
        if _query_missing(query):
            raise QueryRequiredError()
        league = league or self.config.default_league

        logger.info(f"Searching {game} trade in {league}")
        response = await self._gated(
            SEARCH_ROUTE,
            self.config.min_delay_for(SEARCH_ROUTE),
            lambda: self.client.search(game, league, query, sort),
        )
        if not response.ok:
            raise _rejection_for(response)

        search_data = _json_object(response, "search")
        search_id = search_data.get("id")
        total = search_data.get("total")
        result_ids = search_data.get("result") or []
        if not isinstance(result_ids, list):
            raise UpstreamUnreachableError("PoE API returned an invalid search body")
        if not result_ids:
            return SearchResult(search_id=search_id, league=league, total=total)

        item_ids = result_ids[: result_limit(limit, self.config.search_max_items)]
        logger.info(f"Fetching {len(item_ids)} items for search {search_id}")
        response = await self._gated(
            FETCH_ROUTE,
            self.config.min_delay_for(FETCH_ROUTE),
            lambda: self.client.fetch(game, item_ids, search_id),
        )
        if not response.ok:
            raise _rejection_for(response)

        items = _json_object(response, "fetch").get("result") or []
        return SearchResult(search_id=search_id, league=league, total=total, items=items)
