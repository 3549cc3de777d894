"""Follow-up question suggestions and the debounce gate in front of them."""

from typing import Any

import httpx
from redis.asyncio import Redis

from healthle.config import Settings, get_settings
from healthle.core.logging import get_logger
from healthle.core.redis import redis_key
from healthle.services.ai.base import JSONEndpointClient

logger = get_logger(__name__)

SUGGESTION_KEYS = ("q1", "q2", "q3", "q4", "q5")


class SuggestionClient(JSONEndpointClient):
    """
    Client for the endpoint that proposes follow-up questions for an answer.

    A valid response is ``{"status": "OK", "result": {"content": {"q1": ...}}}``.
    """

    name = "suggestions"

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = settings or get_settings()
        super().__init__(
            settings.suggestions_url,
            timeout=settings.ai_request_timeout_seconds,
            transport=transport,
        )

    async def fetch(self, prompt: str) -> list[str] | None:
        """Return the suggested questions in order, or None for an unexpected response."""
        data = await self._post({"prompt": prompt})
        return parse_suggestions(data)


def parse_suggestions(data: dict[str, Any]) -> list[str] | None:
    """Extract q1..q5 from a suggestion response."""
    result = data.get("result")
    content = result.get("content") if isinstance(result, dict) else None

    if data.get("status") != "OK" or not isinstance(content, dict) or not content:
        logger.error("Unexpected suggestion response format", keys=sorted(data.keys()))
        return None

    ordered = [content[key] for key in SUGGESTION_KEYS if isinstance(content.get(key), str)]
    # Extra keys keep their response order after q1..q5
    ordered.extend(
        value
        for key, value in content.items()
        if key not in SUGGESTION_KEYS and isinstance(value, str)
    )
    return ordered


class SuggestionDebouncer:
    """
    Let at most one suggestion fetch through per window for a key.

    Uses ``SET NX PX`` so the gate holds across workers. If Redis is
    unavailable the fetch is allowed.
    """

    def __init__(self, redis: Redis, window_ms: int) -> None:
        self._redis = redis
        self._window_ms = window_ms

    async def acquire(self, key: str) -> bool:
        """Return True if a fetch for `key` may run now."""
        if self._window_ms <= 0:
            return True

        try:
            acquired = await self._redis.set(
                redis_key("suggestions", "debounce", key), "1", nx=True, px=self._window_ms
            )
        except Exception as e:
            logger.error("Suggestion debounce failed, allowing fetch", error=str(e))
            return True

        if not acquired:
            logger.debug("Suggestion fetch debounced", key=key)
        return bool(acquired)
