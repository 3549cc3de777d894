"""Async access to the Supabase Postgres tables.

All reads and writes go through one SQLAlchemy engine on the asyncpg driver.
Request handlers get a session from `get_db`; streaming code that outlives
the request opens its own with `get_db_session`.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from healthle.config import Settings, get_settings
from healthle.core.logging import get_logger

logger = get_logger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def async_database_url(url: str) -> str:
    """Rewrite a Supabase connection string for the asyncpg driver."""
    for scheme in ("postgresql://", "postgres://"):
        if url.startswith(scheme):
            return "postgresql+asyncpg://" + url[len(scheme):]
    return url


def engine_options(settings: Settings) -> dict[str, Any]:
    """Keyword arguments for create_async_engine."""
    options: dict[str, Any] = {
        "echo": settings.debug,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": True,
        "pool_recycle": 1800,
    }
    if settings.db_transaction_pooler:
        options["connect_args"] = {
            "statement_cache_size": 0,
            "prepared_statement_cache_size": 0,
        }
    return options


def get_engine() -> AsyncEngine:
    """Get or create the engine."""
    global _engine
    if _engine is None:
        settings = get_settings()
        url = async_database_url(settings.database_url)
        _engine = create_async_engine(url, **engine_options(settings))
        logger.info(
            "Database engine created",
            host=make_url(url).host,
            transaction_pooler=settings.db_transaction_pooler,
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


@asynccontextmanager
async def get_db_session() -> AsyncIterator[AsyncSession]:
    """A session that commits on success and rolls back on error."""
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency yielding a request-scoped session."""
    async with get_db_session() as session:
        yield session


async def check_db_health() -> bool:
    """Run a trivial query for the readiness probe."""
    try:
        async with get_engine().connect() as conn:
            return (await conn.scalar(text("SELECT 1"))) == 1
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        return False


async def dispose_engine() -> None:
    """Close pooled connections on shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Database engine disposed")
