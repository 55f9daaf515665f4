import json
import re
from typing import Annotated, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _parse_cors_origins(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, list):
        items = [str(v).strip() for v in raw]
        return [v for v in items if v]

    raw = str(raw).strip()
    if not raw or raw == "[]":
        return []
    if raw == "*":
        return ["*"]

    # JSON list first, then fall back to a comma/space separated list.
    if raw.startswith(("[", '"', "'")):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            items = [str(v).strip() for v in parsed]
            return [v for v in items if v]
        if isinstance(parsed, str):
            raw = parsed.strip()
            if not raw or raw == "[]":
                return []
            if raw == "*":
                return ["*"]

    parts = [p for p in re.split(r"[,\s]+", raw) if p]
    origins: list[str] = []
    for part in parts:
        if part == "*":
            return ["*"]
        if "://" in part:
            origins.append(part)
            continue
        # Browsers send the scheme in the Origin header.
        origins.append(f"http://{part}")
        origins.append(f"https://{part}")

    seen: set[str] = set()
    result: list[str] = []
    for origin in origins:
        if origin in seen:
            continue
        seen.add(origin)
        result.append(origin)
    return result


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    # Debug mode - includes exception messages in 500 responses
    debug: bool = False

    service_name: str = "PoE Trade API Proxy"
    host: str = "0.0.0.0"
    port: int = 3000

    # Upstream trade API
    upstream_base_url: str = "https://www.pathofexile.com"
    upstream_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )

    # Rate gate: minimum spacing between upstream requests per route-class.
    # Per-route values fall back to min_delay_seconds when unset.
    min_delay_seconds: float = 5.0
    search_min_delay_seconds: float | None = None
    fetch_min_delay_seconds: float | None = None
    stats_min_delay_seconds: float | None = None

    # Optional backoff after consecutive upstream failures (off by default)
    gate_backoff_enabled: bool = False
    gate_backoff_base: float = 2.0
    gate_backoff_max_delay_seconds: float = 60.0

    # Stats cache
    stats_cache_ttl_seconds: float = 24 * 60 * 60

    # Search
    search_max_items: int = 10
    default_league: str = "Standard"

    # HTTP Client connection pool settings
    httpx_connect_timeout: float = 10.0
    httpx_read_timeout: float = 30.0
    httpx_write_timeout: float = 10.0
    httpx_pool_timeout: float = 5.0
    httpx_keepalive_expiry: float = 30.0
    httpx_max_connections: int = 20
    httpx_max_keepalive_connections: int = 10

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    # NoDecode keeps a bare host value (e.g. "43.163.94.63") from failing
    # JSON decoding at startup.
    cors_origins: Annotated[list[str], NoDecode] = ["*"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def decode_cors_origins(cls, v: Any) -> list[str]:
        return _parse_cors_origins(v)

    @field_validator(
        "min_delay_seconds",
        "search_min_delay_seconds",
        "fetch_min_delay_seconds",
        "stats_min_delay_seconds",
    )
    @classmethod
    def validate_delay_not_negative(cls, v: float | None) -> float | None:
        """Validate rate gate delays are not negative."""
        if v is not None and v < 0:
            raise ValueError("Rate gate delays must not be negative")
        return v

    @field_validator("stats_cache_ttl_seconds")
    @classmethod
    def validate_ttl_positive(cls, v: float) -> float:
        """Validate cache TTL is positive."""
        if v <= 0:
            raise ValueError("stats_cache_ttl_seconds must be positive")
        return v

    @field_validator("search_max_items")
    @classmethod
    def validate_max_items(cls, v: int) -> int:
        if v < 1:
            raise ValueError("search_max_items must be at least 1")
        return v

    @field_validator("gate_backoff_base")
    @classmethod
    def validate_backoff_base(cls, v: float) -> float:
        if v < 1:
            raise ValueError("gate_backoff_base must be at least 1")
        return v

    @field_validator("httpx_connect_timeout", "httpx_read_timeout", "httpx_write_timeout")
    @classmethod
    def validate_timeout_positive(cls, v: float) -> float:
        """Validate timeout values are positive."""
        if v <= 0:
            raise ValueError("Timeout values must be positive")
        return v

    def min_delay_for(self, route_class: str) -> float:
        """Return the configured minimum delay for a route-class.

        Route-classes may carry a game suffix ("stats:poe2"); the override is
        looked up by the part before the colon.
        """
        family = route_class.split(":", 1)[0]
        override = {
            "search": self.search_min_delay_seconds,
            "fetch": self.fetch_min_delay_seconds,
            "stats": self.stats_min_delay_seconds,
        }.get(family)
        return self.min_delay_seconds if override is None else override

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()
