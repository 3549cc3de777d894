"""Service status endpoint for operations tooling."""

from fastapi import APIRouter, Depends

from healthle import __version__
from healthle.config import get_settings
from healthle.core.auth import verify_ops_api_key
from healthle.schemas.common import ServiceStatus

router = APIRouter(tags=["status"])


@router.get(
    "/status",
    response_model=ServiceStatus,
    dependencies=[Depends(verify_ops_api_key)],
)
async def get_status() -> ServiceStatus:
    """
    Version, environment and AI endpoint configuration.

    Reports `degraded` while an optional AI endpoint (suggestions, dynamic
    questions, system prompt) is unset; those features are skipped silently.
    """
    settings = get_settings()
    endpoints = settings.ai_endpoints_configured

    return ServiceStatus(
        service="healthle",
        version=__version__,
        environment=settings.environment,
        status="operational" if all(endpoints.values()) else "degraded",
        ai_endpoints=endpoints,
    )
