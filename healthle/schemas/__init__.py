"""Pydantic schemas for API request/response validation."""

from healthle.schemas.account import AuthSession, Credentials, SessionStatus, SignUpRequest
from healthle.schemas.chat import (
    AskRequest,
    ChatEvent,
    ChatMessageOut,
    ConversationResponse,
    SurveyRequest,
    SurveyResponse,
)
from healthle.schemas.common import ErrorResponse, ServiceStatus
from healthle.schemas.dashboard import (
    Category,
    ConcernListResponse,
    DashboardResponse,
    ExamplesResponse,
    StartConsultationRequest,
    StartConsultationResponse,
    SuggestionsResponse,
)
from healthle.schemas.health import HealthResponse, ReadinessResponse
from healthle.schemas.history import PastConsultation, PastConsultationsResponse
from healthle.schemas.questionnaire import (
    Answer,
    Question,
    QuestionnaireResponse,
    QuestionnaireSubmitRequest,
    QuestionnaireSubmitResponse,
)
from healthle.schemas.settings import LegalDocumentResponse, PageMetadata, SettingsResponse

__all__ = [
    # Common
    "ErrorResponse",
    "ServiceStatus",
    # Health
    "HealthResponse",
    "ReadinessResponse",
    # Account
    "AuthSession",
    "Credentials",
    "SessionStatus",
    "SignUpRequest",
    # Dashboard
    "Category",
    "ConcernListResponse",
    "DashboardResponse",
    "ExamplesResponse",
    "StartConsultationRequest",
    "StartConsultationResponse",
    "SuggestionsResponse",
    # Questionnaire
    "Answer",
    "Question",
    "QuestionnaireResponse",
    "QuestionnaireSubmitRequest",
    "QuestionnaireSubmitResponse",
    # Chat
    "AskRequest",
    "ChatEvent",
    "ChatMessageOut",
    "ConversationResponse",
    "SurveyRequest",
    "SurveyResponse",
    # History
    "PastConsultation",
    "PastConsultationsResponse",
    # Settings
    "LegalDocumentResponse",
    "PageMetadata",
    "SettingsResponse",
]
