"""SQLAlchemy models for consultations and questionnaire answers."""

import uuid

from sqlalchemy import Column, DateTime, Text
from sqlalchemy.dialects.postgresql import UUID

from healthle.models.base import Base

# consultation_data stores answers in fixed numbered columns
MAX_QUESTION_COLUMNS = 15


class Consultation(Base):
    """A concern entered on the dashboard, before the questionnaire."""

    __tablename__ = "consultations"

    id = Column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))
    concern = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default="now()")

    def __repr__(self) -> str:
        return f"<Consultation(id={self.id})>"


class ConsultationData(Base):
    """Concern, questionnaire answers and assistant thread of one consultation."""

    __tablename__ = "consultation_data"

    id = Column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))
    consultation_id = Column(Text, nullable=False, index=True)
    concern = Column(Text, nullable=False)
    sprompt = Column(Text)
    uid = Column(UUID(as_uuid=False), index=True)
    thread_id = Column(Text)

    question_1 = Column(Text)
    answer_1 = Column(Text)
    question_2 = Column(Text)
    answer_2 = Column(Text)
    question_3 = Column(Text)
    answer_3 = Column(Text)
    question_4 = Column(Text)
    answer_4 = Column(Text)
    question_5 = Column(Text)
    answer_5 = Column(Text)
    question_6 = Column(Text)
    answer_6 = Column(Text)
    question_7 = Column(Text)
    answer_7 = Column(Text)
    question_8 = Column(Text)
    answer_8 = Column(Text)
    question_9 = Column(Text)
    answer_9 = Column(Text)
    question_10 = Column(Text)
    answer_10 = Column(Text)
    question_11 = Column(Text)
    answer_11 = Column(Text)
    question_12 = Column(Text)
    answer_12 = Column(Text)
    question_13 = Column(Text)
    answer_13 = Column(Text)
    question_14 = Column(Text)
    answer_14 = Column(Text)
    question_15 = Column(Text)
    answer_15 = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default="now()")

    def answered_pairs(self, limit: int = MAX_QUESTION_COLUMNS) -> list[tuple[str, str]]:
        """Return (question, answer) pairs from the first `limit` columns that are both filled."""
        pairs = []
        for n in range(1, min(limit, MAX_QUESTION_COLUMNS) + 1):
            question = getattr(self, f"question_{n}")
            answer = getattr(self, f"answer_{n}")
            if question and answer:
                pairs.append((question, answer))
        return pairs

    def __repr__(self) -> str:
        return f"<ConsultationData(id={self.id}, consultation_id={self.consultation_id})>"


class SurveyResult(Base):
    """Satisfaction survey answer given after the first chat response."""

    __tablename__ = "survey_results"

    id = Column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))
    consultation_id = Column(Text, nullable=False, index=True)
    answer = Column(Text, nullable=False)
    uid = Column(UUID(as_uuid=False))
    created_at = Column(DateTime(timezone=True), server_default="now()")
