"""Healthle backend - FastAPI application."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from healthle import __version__
from healthle.api.health import router as health_router
from healthle.api.v1.router import router as v1_router
from healthle.config import get_settings
from healthle.core.database import dispose_engine
from healthle.core.errors import register_exception_handlers
from healthle.core.logging import get_logger, setup_logging
from healthle.core.redis import close_redis
from healthle.middleware import (
    AuditLogMiddleware,
    AuthStateMiddleware,
    CorrelationIdMiddleware,
    RateLimitMiddleware,
)
from healthle.services.chat import wait_for_background_tasks

logger = get_logger(__name__)

# Seconds to wait for pending chat message writes on shutdown
SHUTDOWN_FLUSH_TIMEOUT = 10.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup/shutdown events."""
    setup_logging()
    logger.info("Healthle backend starting", version=__version__)

    yield

    await wait_for_background_tasks(timeout=SHUTDOWN_FLUSH_TIMEOUT)
    await close_redis()
    await dispose_engine()
    logger.info("Healthle backend stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Healthle Backend",
        description="Health consultation service: questionnaire, AI chat and consultation history",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    # Last added runs first:
    # CORS -> Correlation -> AuthState -> RateLimit -> AuditLog -> Request
    app.add_middleware(AuditLogMiddleware)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(AuthStateMiddleware)
    app.add_middleware(CorrelationIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Health checks (no prefix, no auth)
    app.include_router(health_router)
    app.include_router(v1_router, prefix="/api/v1")

    return app


app = create_app()
