"""Health check endpoints for monitoring and orchestration."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from healthle import __version__
from healthle.config import get_settings
from healthle.core.database import check_db_health
from healthle.core.redis import check_redis_health
from healthle.schemas.health import HealthCheckDetail, HealthResponse, ReadinessResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns 200 if the service is running. Does not check dependencies.
    """
    return HealthResponse(status="healthy", version=__version__)


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness() -> JSONResponse:
    """
    Readiness probe endpoint.

    Returns 200 only if the database and Redis are reachable.
    """
    db_healthy = await check_db_health()
    redis_healthy = await check_redis_health()
    all_healthy = db_healthy and redis_healthy

    body = ReadinessResponse(
        status="ready" if all_healthy else "not ready",
        checks=HealthCheckDetail(
            database="ok" if db_healthy else "failed",
            redis="ok" if redis_healthy else "failed",
        ),
        ai_endpoints=get_settings().ai_endpoints_configured,
    )
    return JSONResponse(status_code=200 if all_healthy else 503, content=body.model_dump())


@router.get("/health/live", response_model=HealthResponse)
async def liveness() -> HealthResponse:
    """Liveness probe endpoint."""
    return HealthResponse(status="alive")
