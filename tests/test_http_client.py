"""Tests for the upstream HTTP client lifecycle."""

import pytest

from tradeproxy.app.core.config import Settings
from tradeproxy.app.core.http_client import create_http_client, init_http_client


@pytest.mark.asyncio
async def test_init_http_client_closes_on_exit():
    config = Settings(_env_file=None, upstream_base_url="https://trade.example")

    async with init_http_client(config) as client:
        assert not client.is_closed
        assert client.base_url.host == "trade.example"

    assert client.is_closed


@pytest.mark.asyncio
async def test_init_http_client_closes_on_error():
    with pytest.raises(RuntimeError):
        async with init_http_client(Settings(_env_file=None)) as client:
            raise RuntimeError("startup failed")

    assert client.is_closed


@pytest.mark.asyncio
async def test_create_http_client_headers_and_limits():
    config = Settings(
        _env_file=None,
        upstream_user_agent="TestAgent/1.0",
        httpx_read_timeout=12.0,
    )

    async with create_http_client(config) as client:
        assert client.headers["User-Agent"] == "TestAgent/1.0"
        assert client.headers["Accept"] == "application/json"
        assert client.timeout.read == 12.0
