"""Schemas for the health questionnaire."""

from typing import Literal

from pydantic import BaseModel, Field

QuestionType = Literal["number", "select", "multiline", "select-with-other"]
AnswerValue = str | float | int | list[str]


class Question(BaseModel):
    """One questionnaire question."""

    id: int
    text: str
    type: QuestionType
    options: list[str] | None = None
    min: float | None = None
    max: float | None = None
    step: float | None = None
    unit: str | None = None
    allow_none: bool = False


class Answer(BaseModel):
    """An answer keyed by the question text."""

    question: str
    answer: AnswerValue


class QuestionnaireResponse(BaseModel):
    """Questions to ask for a concern."""

    concern: str
    questions: list[Question]
    total_questions: int
    has_dynamic_questions: bool = Field(
        ..., description="False when the concern-specific questions could not be generated"
    )


class QuestionnaireSubmitRequest(BaseModel):
    """Answers submitted at the end of the questionnaire."""

    concern: str
    questions: list[Question] = Field(
        default_factory=list,
        description="Questions that were shown, including generated ones",
    )
    answers: list[Answer]


class QuestionnaireSubmitResponse(BaseModel):
    """Saved consultation data and where to go next."""

    consultation_id: str
    redirect_path: str
