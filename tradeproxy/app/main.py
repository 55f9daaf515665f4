from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tradeproxy.app.api import health_router, metrics_router, search_router, stats_router
from tradeproxy.app.core.config import Settings, settings as default_settings
from tradeproxy.app.core.http_client import init_http_client
from tradeproxy.app.core.logging import get_logger, setup_logging
from tradeproxy.app.core.metrics import ProxyMetrics
from tradeproxy.app.exceptions import ProxyException, UpstreamError
from tradeproxy.app.middleware.request_id import RequestIdMiddleware, get_request_id
from tradeproxy.app.services.fetch_orchestrator import FetchOrchestrator
from tradeproxy.app.services.upstream import TradeApiClient


def _flatten_validation_errors(exc: RequestValidationError) -> str:
    """Return a concise validation message, e.g. ``limit: Input should be ...``."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(i) for i in err.get("loc", []) if i != "body")
        msg = err.get("msg", "Invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts)


def create_app(config: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Settings to use instead of the environment-loaded defaults

    Returns:
        Configured FastAPI application instance
    """
    config = config if config is not None else default_settings

    setup_logging(config)
    logger = get_logger(__name__)

    metrics = ProxyMetrics()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan context manager.

        Opens the shared upstream HTTP client and builds the orchestrator
        that owns the rate gate and stats cache for the process lifetime.
        """
        async with init_http_client(config) as http_client:
            app.state.orchestrator = FetchOrchestrator(
                client=TradeApiClient(http_client),
                config=config,
                metrics=metrics,
            )
            logger.info(
                "Application startup complete",
                extra={
                    "upstream": config.upstream_base_url,
                    "min_delay_seconds": config.min_delay_seconds,
                    "stats_cache_ttl_seconds": config.stats_cache_ttl_seconds,
                    "debug_mode": config.debug,
                },
            )
            yield

        logger.info("Application shutdown complete")

    app = FastAPI(
        title=config.service_name,
        description="Rate-limited, cached proxy for the Path of Exile trade API",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.metrics = metrics

    # Order matters: last added = first executed
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
        expose_headers=["X-Request-ID", "X-Cache"],
        max_age=86400,
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(stats_router)
    app.include_router(search_router)

    @app.exception_handler(ProxyException)
    async def proxy_exception_handler(request: Request, exc: ProxyException) -> JSONResponse:
        """Map proxy exceptions to their status code and JSON body."""
        if isinstance(exc, UpstreamError):
            logger.error(
                f"Upstream failure surfaced to client: {exc.message}",
                extra={"upstream_status": exc.upstream_status, "path": request.url.path},
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Report malformed request bodies as 400 with the usual error body."""
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request body", "details": _flatten_validation_errors(exc)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == 404:
            logger.info(f"404: {request.method} {request.url.path}")
            return JSONResponse(
                status_code=404,
                content={"error": "Not found", "path": request.url.path},
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Log unhandled exceptions with traceback; never return the traceback."""
        request_id = get_request_id(request)
        logger.exception(
            f"Unhandled exception [request_id={request_id}]",
            extra={
                "request_id": request_id,
                "exception_type": type(exc).__name__,
            },
        )
        content = {
            "error": "Internal server error",
            "request_id": request_id,
        }
        if config.debug:
            content["message"] = str(exc)
            content["exception_type"] = type(exc).__name__
        return JSONResponse(status_code=500, content=content)

    return app


# Create the application instance
app = create_app()
