"""Page metadata endpoint."""

from fastapi import APIRouter, Query

from healthle.dependencies import SettingsDep
from healthle.schemas.settings import PageMetadata
from healthle.services.pages import page_metadata

router = APIRouter(prefix="/pages", tags=["pages"])


@router.get("/{name}", response_model=PageMetadata)
async def get_page_metadata(
    name: str,
    settings: SettingsDep,
    concern: str | None = Query(default=None, description="Concern shown in the questionnaire title"),
) -> PageMetadata:
    """Title, description and share image of a page."""
    return page_metadata(name, concern=concern, settings=settings)
