"""Clients for the per-concern questionnaire and system prompt endpoints."""

import json
from dataclasses import dataclass, field

import httpx

from healthle.config import Settings, get_settings
from healthle.core.logging import get_logger
from healthle.services.ai.base import AIServiceError, JSONEndpointClient

logger = get_logger(__name__)

DYNAMIC_QUESTION_COUNT = 5


@dataclass
class GeneratedQuestion:
    """A concern-specific question proposed by the questionnaire endpoint."""

    text: str
    choices: list[str] = field(default_factory=list)


class QuestionnaireClient(JSONEndpointClient):
    """
    Client for the endpoint that writes five extra questions for a concern.

    Response shape::

        {"result": {"q1": "...", ..., "q5": "..."},
         "resultq1": {"choices": [...]}, ..., "resultq5": {"choices": [...]}}
    """

    name = "questionnaire"

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = settings or get_settings()
        super().__init__(
            settings.questionnaire_url,
            timeout=settings.ai_request_timeout_seconds,
            transport=transport,
        )

    async def generate(self, concern: str) -> list[GeneratedQuestion]:
        """Generate the concern-specific questions."""
        data = await self._post({"prompt": concern})

        result = data.get("result")
        if not isinstance(result, dict):
            raise AIServiceError("questionnaire response has no result")

        questions = []
        for n in range(1, DYNAMIC_QUESTION_COUNT + 1):
            text = result.get(f"q{n}")
            detail = data.get(f"resultq{n}")
            choices = detail.get("choices") if isinstance(detail, dict) else None
            if not isinstance(text, str) or not isinstance(choices, list):
                raise AIServiceError(f"questionnaire response is missing q{n}")
            questions.append(
                GeneratedQuestion(text=text, choices=[str(choice) for choice in choices])
            )

        logger.info("Dynamic questions generated", count=len(questions))
        return questions


class SystemPromptClient(JSONEndpointClient):
    """Client for the endpoint that writes the assistant's system prompt for a concern."""

    name = "system-prompt"

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = settings or get_settings()
        super().__init__(
            settings.system_prompt_url,
            timeout=settings.ai_request_timeout_seconds,
            transport=transport,
        )

    async def generate(self, concern: str) -> str | None:
        """Return the generated prompt; non-string payloads are serialized to JSON."""
        data = await self._post({"prompt": concern})
        message = data.get("message")

        if message is None or isinstance(message, str):
            return message
        return json.dumps(message, ensure_ascii=False)
