"""Clients for the external AI text-generation endpoints."""

from healthle.services.ai.assistant import AssistantClient, AssistantStream
from healthle.services.ai.base import AIServiceError, JSONEndpointClient
from healthle.services.ai.questionnaire import (
    GeneratedQuestion,
    QuestionnaireClient,
    SystemPromptClient,
)
from healthle.services.ai.stream import StreamDecoder, extract_delta_text
from healthle.services.ai.suggestions import SuggestionClient, SuggestionDebouncer

__all__ = [
    "AIServiceError",
    "AssistantClient",
    "AssistantStream",
    "GeneratedQuestion",
    "JSONEndpointClient",
    "QuestionnaireClient",
    "StreamDecoder",
    "SuggestionClient",
    "SuggestionDebouncer",
    "SystemPromptClient",
    "extract_delta_text",
]
