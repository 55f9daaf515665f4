"""Shared fixtures: a controllable clock and the upstream mock."""

import asyncio

import pytest
import pytest_asyncio
import respx

from tradeproxy.app.core.cache import TtlCache
from tradeproxy.app.core.config import Settings
from tradeproxy.app.core.http_client import create_http_client
from tradeproxy.app.services.fetch_orchestrator import FetchOrchestrator
from tradeproxy.app.services.rate_gate import RateGate
from tradeproxy.app.services.upstream import TradeApiClient

UPSTREAM = "https://www.pathofexile.com"


class FakeClock:
    """Clock whose time only moves when advanced or slept on."""

    def __init__(self, start: float = 1_000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        # Yield like a real sleep so other tasks get scheduled.
        await asyncio.sleep(0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> Settings:
    return Settings(
        _env_file=None,
        min_delay_seconds=5.0,
        stats_cache_ttl_seconds=24 * 60 * 60,
        upstream_base_url=UPSTREAM,
    )


@pytest.fixture
def gate(clock: FakeClock) -> RateGate:
    return RateGate(clock=clock, sleep=clock.sleep)


@pytest.fixture
def cache(clock: FakeClock) -> TtlCache:
    return TtlCache(clock=clock)


@pytest.fixture
def upstream():
    """respx router for the trade API; unmatched requests fail the test."""
    with respx.mock(assert_all_called=False) as mock:
        yield mock


@pytest_asyncio.fixture
async def orchestrator(config, gate, cache, upstream):
    async with create_http_client(config) as http_client:
        yield FetchOrchestrator(
            client=TradeApiClient(http_client),
            gate=gate,
            cache=cache,
            config=config,
        )
