"""Core utilities for the proxy application."""

from tradeproxy.app.core.cache import CacheEntry, TtlCache
from tradeproxy.app.core.config import settings
from tradeproxy.app.core.logging import get_logger, setup_logging

__all__ = [
    "CacheEntry",
    "TtlCache",
    "settings",
    "get_logger",
    "setup_logging",
]
