"""SQLAlchemy ORM models for the Supabase tables."""

from healthle.models.base import Base
from healthle.models.chat import ChatMessage, ChatSession
from healthle.models.consultation import (
    MAX_QUESTION_COLUMNS,
    Consultation,
    ConsultationData,
    SurveyResult,
)
from healthle.models.content import (
    ConsultationExample,
    HealthCategory,
    HealthConcern,
    LegalDocument,
)

__all__ = [
    "Base",
    # Consultations
    "MAX_QUESTION_COLUMNS",
    "Consultation",
    "ConsultationData",
    "SurveyResult",
    # Chat
    "ChatMessage",
    "ChatSession",
    # Content
    "ConsultationExample",
    "HealthCategory",
    "HealthConcern",
    "LegalDocument",
]
