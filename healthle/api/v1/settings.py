"""Settings page endpoints."""

from fastapi import APIRouter

from healthle.dependencies import LegalServiceDep, OptionalUser, SettingsDep
from healthle.schemas.settings import LegalDocumentResponse, LegalDocumentType, SettingsResponse
from healthle.services.legal import DISCLAIMER

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=SettingsResponse)
async def get_settings_page(settings: SettingsDep, user: OptionalUser) -> SettingsResponse:
    """Login state, interview and contact links, and the disclaimer."""
    return SettingsResponse(
        is_logged_in=user is not None,
        interview_url=settings.interview_url,
        contact_url=settings.contact_url,
        disclaimer=DISCLAIMER,
    )


@router.get("/legal/{document_type}", response_model=LegalDocumentResponse)
async def get_legal_document(
    document_type: LegalDocumentType,
    service: LegalServiceDep,
) -> LegalDocumentResponse:
    """Privacy policy or terms of service."""
    return await service.get(document_type)
