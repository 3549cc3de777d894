"""Domain exceptions and their HTTP translation."""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from healthle.core.logging import get_logger
from healthle.schemas.common import ErrorResponse

logger = get_logger(__name__)


class HealthleError(Exception):
    """Base exception for errors surfaced to the user."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    error_code: str = "HEALTHLE_ERROR"

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class NotFoundError(HealthleError):
    """A referenced consultation, session or document does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"


class ValidationFailedError(HealthleError):
    """User input failed a client-side style check (empty, unanswered, mismatch)."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "VALIDATION_FAILED"


class AuthenticationError(HealthleError):
    """Sign-up, sign-in or session lookup was rejected."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "AUTHENTICATION_FAILED"


class UpstreamError(HealthleError):
    """An external service (database, AI endpoint, auth API) failed."""

    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "UPSTREAM_FAILED"


async def healthle_error_handler(request: Request, exc: HealthleError) -> JSONResponse:
    """Render a domain error as the standard error response."""
    logger.warning(
        "Request failed",
        error_code=exc.error_code,
        status_code=exc.status_code,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(detail=exc.message, error_code=exc.error_code).model_dump(),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach domain error handlers to the application."""
    app.add_exception_handler(HealthleError, healthle_error_handler)
