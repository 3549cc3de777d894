"""Schemas for past consultations."""

from datetime import datetime

from pydantic import BaseModel


class PastConsultation(BaseModel):
    """A consultation in the user's history list."""

    id: str
    consultation_id: str
    concern: str
    created_at: datetime | None = None
    date_label: str | None = None
    time_label: str | None = None
    redirect_path: str


class PastConsultationsResponse(BaseModel):
    """The user's consultations, newest first."""

    consultations: list[PastConsultation]
