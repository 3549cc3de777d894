"""Health check endpoint schemas."""

from typing import Literal

from pydantic import BaseModel

CheckResult = Literal["ok", "failed"]


class HealthResponse(BaseModel):
    """Response for basic health check endpoints."""

    status: Literal["healthy", "alive"]
    version: str | None = None


class HealthCheckDetail(BaseModel):
    """Results of the dependency checks."""

    database: CheckResult
    redis: CheckResult


class ReadinessResponse(BaseModel):
    """
    Response for the readiness probe.

    `ai_endpoints` lists which optional AI endpoints are configured; they do
    not affect readiness.
    """

    status: Literal["ready", "not ready"]
    checks: HealthCheckDetail
    ai_endpoints: dict[str, bool] = {}
