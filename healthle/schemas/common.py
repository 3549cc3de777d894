"""Schemas shared by several routers."""

from typing import Literal

from pydantic import BaseModel, Field


class ServiceStatus(BaseModel):
    """Ops view of the running service."""

    service: str
    version: str
    environment: Literal["development", "staging", "production"]
    status: Literal["operational", "degraded"]
    ai_endpoints: dict[str, bool] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Body of every domain error; `detail` is shown to the user as-is."""

    detail: str
    error_code: str | None = None
