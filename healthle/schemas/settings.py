"""Schemas for the settings page and page metadata."""

from typing import Literal

from pydantic import BaseModel

LegalDocumentType = Literal["privacy_policy", "terms_of_service"]


class SettingsResponse(BaseModel):
    """Settings page state."""

    is_logged_in: bool
    interview_url: str
    contact_url: str
    disclaimer: str


class LegalDocumentResponse(BaseModel):
    """A legal document shown in a modal."""

    type: LegalDocumentType
    title: str
    content: str


class PageMetadata(BaseModel):
    """Title and description of a page."""

    name: str
    title: str
    description: str
    og_title: str
    url: str
    image_url: str
    disclaimer: str | None = None
