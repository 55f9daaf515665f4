"""Shared HTTP client management for the upstream trade API.

One AsyncClient is created in the application lifespan and reused for every
upstream call so connections to the trade API are pooled.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx

from tradeproxy.app.core.config import Settings, settings as default_settings


def create_http_client(config: Settings | None = None) -> httpx.AsyncClient:
    """Create an AsyncClient with the configured timeouts, pool limits and
    the fixed upstream headers.

    The caller owns the client and must close it.
    """
    config = config if config is not None else default_settings

    limits = httpx.Limits(
        max_connections=config.httpx_max_connections,
        max_keepalive_connections=config.httpx_max_keepalive_connections,
        keepalive_expiry=config.httpx_keepalive_expiry,
    )
    timeout = httpx.Timeout(
        connect=config.httpx_connect_timeout,
        read=config.httpx_read_timeout,
        write=config.httpx_write_timeout,
        pool=config.httpx_pool_timeout,
    )
    headers = {
        "User-Agent": config.upstream_user_agent,
        "Accept": "application/json",
    }
    return httpx.AsyncClient(
        base_url=config.upstream_base_url,
        timeout=timeout,
        limits=limits,
        headers=headers,
    )


@asynccontextmanager
async def init_http_client(
    config: Settings | None = None,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Create the HTTP client for the application lifespan and close it on exit.

    Used in the FastAPI lifespan:

        async with init_http_client(settings) as client:
            app.state.orchestrator = FetchOrchestrator(TradeApiClient(client), ...)
            yield
    """
    client = create_http_client(config)
    try:
        yield client
    finally:
        await client.aclose()
