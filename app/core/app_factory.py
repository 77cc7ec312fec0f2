"""Application factory for the FastAPI app.

Centralizes app construction (state, middleware, handlers, routers) so tests
can build isolated instances with their own rate limit store.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.adapters.rate_limit.base import AbstractRateLimitStore
from app.adapters.rate_limit.in_memory import InMemoryRateLimitStore
from app.adapters.rate_limit.sweeper import RateLimitSweeper
from app.api.routes import health_router, rate_limit_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware, security_headers_middleware
from app.core.openapi import apply_openapi_customizations
from app.core.rate_limit import rate_limit_middleware

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    sweeper = RateLimitSweeper(
        app.state.rate_limit_store,
        interval_seconds=settings.app.rate_limit_sweep_interval_seconds,
    )
    app.state.rate_limit_sweeper = sweeper
    sweeper.start()
    logger.info(
        "app.startup",
        extra={
            "app_env": settings.app_env,
            "rate_limit_enabled": settings.app.rate_limit_enabled,
            "rate_limit_window_ms": settings.app.rate_limit_window_ms,
            "rate_limit_max_requests": settings.app.rate_limit_max_requests,
        },
    )
    try:
        yield
    finally:
        sweeper.stop()
        app.state.rate_limit_store.dispose()
        logger.info("app.shutdown")


def create_app(*, store: AbstractRateLimitStore | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        store: Rate limit store to use; a fresh in-memory store by default.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Rate Limit Gateway",
        description=(
            "Request admission for the campaign platform API: a per-client "
            "fixed-window limit on every /api/ route, per-route limits, "
            "security headers and a status endpoint reporting the caller's "
            "remaining budget."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    # Created eagerly so the app serves requests even when lifespan is not run
    app.state.rate_limit_store = store if store is not None else InMemoryRateLimitStore()

    # Middleware: the last registered runs first
    app.middleware("http")(rate_limit_middleware)
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(health_router, prefix="/api")
    app.include_router(rate_limit_router, prefix="/api")

    apply_openapi_customizations(app)

    return app
