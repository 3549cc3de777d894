"""Redis-based rate limiting middleware for the AI-backed endpoints."""

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from healthle.config import get_settings
from healthle.core.logging import get_logger
from healthle.core.redis import get_redis, redis_key

logger = get_logger(__name__)


@dataclass(frozen=True)
class RateLimitRule:
    """Requests allowed per window for a path prefix and method."""

    category: str
    prefix: str
    method: str
    requests: int
    window: int
    suffix: str = ""

    def matches(self, method: str, path: str) -> bool:
        return (
            method == self.method
            and path.startswith(self.prefix)
            and path.endswith(self.suffix)
        )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Redis fixed-window rate limiting.

    Only routes that call an AI endpoint are limited. Signed-in users are
    counted by user id, anonymous users by client address.
    """

    LIMITS: tuple[RateLimitRule, ...] = (
        RateLimitRule("chat", "/api/v1/chat/", "POST", requests=60, window=3600, suffix="/start"),
        RateLimitRule("chat", "/api/v1/chat/", "POST", requests=60, window=3600, suffix="/messages"),
        RateLimitRule("chat", "/api/v1/history/sessions/", "POST", requests=60, window=3600, suffix="/messages"),
        RateLimitRule("questionnaire", "/api/v1/questionnaire", "GET", requests=30, window=3600),
        RateLimitRule("questionnaire", "/api/v1/questionnaire/", "POST", requests=30, window=3600),
    )

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Check rate limits before processing request."""
        settings = get_settings()

        # Operators bypass limits
        api_key = request.headers.get("X-API-Key")
        if api_key and api_key == settings.healthle_ops_api_key:
            return await call_next(request)

        rule = self._match(request.method, request.url.path)
        if rule is None:
            return await call_next(request)

        subject = self._subject(request)
        if subject is None:
            return await call_next(request)

        try:
            redis = await get_redis()

            window_start = int(time.time()) // rule.window
            key = redis_key("ratelimit", rule.category, subject, window_start)

            current = await redis.incr(key)
            if current == 1:
                await redis.expire(key, rule.window)
        except Exception as e:
            logger.error("Rate limiting failed, allowing request", error=str(e))
            return await call_next(request)

        if current > rule.requests:
            logger.warning(
                "Rate limit exceeded",
                category=rule.category,
                subject=subject,
                current=current,
                limit=rule.requests,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "detail": "リクエストが多すぎます。しばらくしてから再度お試しください。",
                    "error_code": "RATE_LIMITED",
                    "retry_after": rule.window,
                },
                headers={"Retry-After": str(rule.window)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(rule.requests)
        response.headers["X-RateLimit-Remaining"] = str(max(0, rule.requests - current))
        response.headers["X-RateLimit-Reset"] = str((window_start + 1) * rule.window)
        return response

    def _match(self, method: str, path: str) -> RateLimitRule | None:
        for rule in self.LIMITS:
            if rule.matches(method, path):
                return rule
        return None

    def _subject(self, request: Request) -> str | None:
        user_id = getattr(request.state, "user_id", None)
        if user_id:
            return f"user:{user_id}"
        if request.client and request.client.host:
            return f"ip:{request.client.host}"
        return None
