"""Audit logging middleware for consultation data access."""

import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from healthle.core.logging import get_logger

logger = get_logger(__name__)


class AuditLogMiddleware(BaseHTTPMiddleware):
    """
    Writes one audit entry per request touching consultation data.

    Entries carry the user, the consultation id set by the endpoint, the
    status code and the duration. Health content never reaches the entry;
    the logging processor redacts it as a second line.
    """

    AUDIT_PATHS = (
        "/api/v1/consultations",
        "/api/v1/questionnaire/",
        "/api/v1/chat/",
        "/api/v1/history/",
        "/api/v1/auth/",
    )

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Log audit entry for relevant endpoints."""
        path = request.url.path

        if not any(path.startswith(p) for p in self.AUDIT_PATHS):
            return await call_next(request)

        start_time = time.time()
        response = await call_next(request)
        duration_ms = int((time.time() - start_time) * 1000)

        logger.info(
            "audit",
            operation=self._get_operation_type(path, request.method),
            method=request.method,
            user_id=getattr(request.state, "user_id", None),
            consultation_id=getattr(request.state, "consultation_id", None),
            status_code=response.status_code,
            duration_ms=duration_ms,
        )

        return response

    def _get_operation_type(self, path: str, method: str) -> str:
        """Determine the operation type from path and method."""
        if path.startswith("/api/v1/consultations"):
            return "consultation_start"
        if path.startswith("/api/v1/questionnaire/"):
            return "questionnaire_submit"
        if path.startswith("/api/v1/chat/"):
            for suffix, operation in (
                ("/start", "chat_start"),
                ("/messages", "chat_ask"),
                ("/survey", "survey_submit"),
                ("/register", "account_register"),
            ):
                if path.endswith(suffix):
                    return operation
        if path.startswith("/api/v1/history/"):
            if "/sessions/" in path:
                return "session_ask" if method == "POST" else "session_read"
            return "history_read"
        if path.startswith("/api/v1/auth/"):
            return f"auth_{path.rsplit('/', 1)[-1]}"
        return f"{method.lower()}_{path}"
