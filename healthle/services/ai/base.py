"""Shared plumbing for the external AI HTTP endpoints."""

from typing import Any

import httpx

from healthle.core.logging import get_logger

logger = get_logger(__name__)


class AIServiceError(Exception):
    """Base exception for AI endpoint errors."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class JSONEndpointClient:
    """
    Client for an AI endpoint that takes a JSON body and returns one JSON document.

    Subclasses set `name` and interpret the response.
    """

    name: str = "ai-endpoint"

    def __init__(
        self,
        url: str,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport

    def is_available(self) -> bool:
        """Check if the endpoint URL is configured."""
        return bool(self._url)

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        """POST the payload and return the decoded JSON body."""
        if not self._url:
            raise AIServiceError(f"{self.name} endpoint is not configured")

        logger.debug("AI endpoint request", endpoint=self.name)

        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                response = await client.post(
                    self._url,
                    headers={"Content-Type": "application/json"},
                    json=payload,
                    timeout=self._timeout,
                )
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as e:
                logger.warning(
                    "AI endpoint returned error status",
                    endpoint=self.name,
                    status_code=e.response.status_code,
                )
                raise AIServiceError(
                    f"HTTP error! status: {e.response.status_code}",
                    status_code=e.response.status_code,
                ) from None
            except httpx.HTTPError as e:
                logger.warning("AI endpoint request failed", endpoint=self.name, error=str(e))
                raise AIServiceError(f"{self.name} request failed: {e}") from None
            except ValueError as e:
                logger.warning("AI endpoint returned invalid JSON", endpoint=self.name)
                raise AIServiceError(f"{self.name} returned invalid JSON: {e}") from None

        if not isinstance(data, dict):
            raise AIServiceError(f"{self.name} returned unexpected payload")
        return data
