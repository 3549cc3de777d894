"""Client for the streaming web assistant endpoint."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx

from healthle.config import Settings, get_settings
from healthle.core.logging import get_logger
from healthle.services.ai.base import AIServiceError

logger = get_logger(__name__)

THREAD_ID_HEADER = "x-thread-id"


@dataclass
class AssistantStream:
    """An open assistant response: the thread it belongs to and its body lines."""

    thread_id: str | None
    lines: AsyncIterator[str]


class AssistantClient:
    """
    Client for the hosted assistant that answers consultations.

    The endpoint takes ``{"message", "threadId"}`` and answers with a
    newline-delimited event stream. A new conversation thread is announced
    through the ``x-thread-id`` response header.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._transport = transport

    @asynccontextmanager
    async def open_stream(
        self,
        message: str,
        thread_id: str | None = None,
    ) -> AsyncIterator[AssistantStream]:
        """
        Open a streamed answer for a message.

        Raises:
            AIServiceError: On a non-2xx status or a transport failure
        """
        url = self._settings.assistant_url
        logger.info(
            "Sending assistant request",
            has_thread=bool(thread_id),
            message_length=len(message),
        )

        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                async with client.stream(
                    "POST",
                    url,
                    headers={"Content-Type": "application/json"},
                    json={"message": message, "threadId": thread_id or ""},
                    timeout=httpx.Timeout(
                        self._settings.ai_stream_timeout_seconds, connect=10.0
                    ),
                ) as response:
                    if response.is_error:
                        raise AIServiceError(
                            f"HTTP error! status: {response.status_code}",
                            status_code=response.status_code,
                        )

                    yield AssistantStream(
                        thread_id=response.headers.get(THREAD_ID_HEADER),
                        lines=response.aiter_lines(),
                    )
            except httpx.HTTPError as e:
                logger.error("Assistant stream failed", error=str(e))
                raise AIServiceError(f"Assistant stream failed: {e}") from None
