"""FastAPI application for the render gateway."""

from contextlib import asynccontextmanager

import fastapi
from fastapi import Request
from fastapi.responses import JSONResponse

from core.config import Settings, get_settings
from core.logger import configure_logging, get_logger
from core.middleware import RequestContextMiddleware
from core.ratelimit import (
    RateLimitExceededError,
    build_rate_limiter,
    rate_limit_exceeded_handler,
)
from rendering import HttpChartRenderer, SegnoQrRenderer
from routes import chart_router, health_router, qr_router

configure_logging()
logger = get_logger(__name__)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for unhandled exceptions."""
    logger.exception(
        "unhandled.exception",
        exc_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred. Please try again."},
    )


@asynccontextmanager
async def lifespan(app: fastapi.FastAPI):
    """Log startup, release the chart renderer's HTTP client on shutdown."""
    settings: Settings = app.state.settings
    logger.info(
        "init.complete",
        environment=settings.environment,
        rate_limit_per_min=settings.rate_limit_per_min,
        chart_renderer_configured=bool(settings.chart_renderer_url),
    )
    try:
        yield
    finally:
        close = getattr(app.state.chart_renderer, "aclose", None)
        if close is not None:
            await close()


def create_app(settings: Settings | None = None) -> fastapi.FastAPI:
    settings = settings or get_settings()

    app = fastapi.FastAPI(
        title="Render Gateway",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    app.state.settings = settings
    app.state.rate_limiter = build_rate_limiter(settings)
    app.state.chart_renderer = HttpChartRenderer(
        settings.chart_renderer_url, settings.http_timeout
    )
    app.state.qr_renderer = SegnoQrRenderer()

    app.add_exception_handler(RateLimitExceededError, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.add_middleware(RequestContextMiddleware)

    app.include_router(health_router)
    app.include_router(chart_router)
    app.include_router(qr_router)
    return app


app = create_app()
