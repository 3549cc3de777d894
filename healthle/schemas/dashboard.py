"""Schemas for the dashboard (concern entry)."""

from pydantic import BaseModel, Field


class Category(BaseModel):
    """A dashboard genre."""

    id: int
    name: str


class DashboardResponse(BaseModel):
    """Initial dashboard state."""

    categories: list[Category]
    selected_category_id: int | None = Field(
        default=None, description="睡眠 if present, otherwise the first category"
    )
    frequent_concerns: list[str] = Field(default_factory=list)


class ConcernListResponse(BaseModel):
    """Frequently consulted concerns of one category."""

    category_id: int
    concerns: list[str]


class SuggestionsResponse(BaseModel):
    """Concerns matching what the user is typing."""

    query: str
    suggestions: list[str]


class ExamplesResponse(BaseModel):
    """Example concerns and the one to display now."""

    examples: list[str]
    current: str | None = None
    rotation_seconds: int


class StartConsultationRequest(BaseModel):
    """Concern submitted from the dashboard."""

    concern: str = Field(..., description="Free-text concern or a selected suggestion")


class StartConsultationResponse(BaseModel):
    """Created consultation and where to go next."""

    consultation_id: str
    concern: str
    redirect_path: str
