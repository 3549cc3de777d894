"""Dashboard endpoints: concern categories, suggestions, examples and consultation start."""

from fastapi import APIRouter, Query, Request, status

from healthle.config import get_settings
from healthle.dependencies import DashboardServiceDep
from healthle.schemas.dashboard import (
    ConcernListResponse,
    DashboardResponse,
    ExamplesResponse,
    StartConsultationRequest,
    StartConsultationResponse,
    SuggestionsResponse,
)
from healthle.services.dashboard import default_category

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(service: DashboardServiceDep) -> DashboardResponse:
    """
    Categories with the default one preselected.

    The default is 睡眠 when it exists, otherwise the first category.
    """
    categories = await service.list_categories()
    selected = default_category(categories)
    frequent = await service.frequent_concerns(selected) if selected is not None else []

    return DashboardResponse(
        categories=categories,
        selected_category_id=selected,
        frequent_concerns=frequent,
    )


@router.get("/dashboard/categories/{category_id}/concerns", response_model=ConcernListResponse)
async def get_category_concerns(category_id: int, service: DashboardServiceDep) -> ConcernListResponse:
    """Frequently consulted concerns of a category."""
    return ConcernListResponse(
        category_id=category_id,
        concerns=await service.frequent_concerns(category_id),
    )


@router.get("/dashboard/suggestions", response_model=SuggestionsResponse)
async def get_suggestions(
    service: DashboardServiceDep,
    q: str = Query(default="", description="Text typed so far"),
) -> SuggestionsResponse:
    """Concerns containing the typed text."""
    return SuggestionsResponse(query=q, suggestions=await service.suggest(q))


@router.get("/dashboard/examples", response_model=ExamplesResponse)
async def get_examples(service: DashboardServiceDep) -> ExamplesResponse:
    """Example concerns and the one currently on display."""
    interval = get_settings().example_rotation_seconds
    examples, current = await service.current_example(interval)
    return ExamplesResponse(examples=examples, current=current, rotation_seconds=interval)


@router.post(
    "/consultations",
    response_model=StartConsultationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def start_consultation(
    request: StartConsultationRequest,
    service: DashboardServiceDep,
    http_request: Request,
) -> StartConsultationResponse:
    """Create a consultation and return the questionnaire path."""
    response = await service.start_consultation(request.concern)
    http_request.state.consultation_id = response.consultation_id
    return response
