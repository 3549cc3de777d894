"""Questionnaire endpoints."""

from fastapi import APIRouter, Query, Request, status

from healthle.dependencies import OptionalUser, QuestionnaireServiceDep
from healthle.schemas.questionnaire import (
    QuestionnaireResponse,
    QuestionnaireSubmitRequest,
    QuestionnaireSubmitResponse,
)

router = APIRouter(prefix="/questionnaire", tags=["questionnaire"])


@router.get("", response_model=QuestionnaireResponse)
async def get_questionnaire(
    service: QuestionnaireServiceDep,
    concern: str = Query(default="", description="Concern entered on the dashboard"),
) -> QuestionnaireResponse:
    """
    Questions for a concern.

    Eight fixed questions followed by five generated for the concern; when
    generation fails only the fixed questions are returned.
    """
    return await service.build(concern)


@router.post(
    "/{consultation_id}",
    response_model=QuestionnaireSubmitResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_questionnaire(
    consultation_id: str,
    request: QuestionnaireSubmitRequest,
    service: QuestionnaireServiceDep,
    user: OptionalUser,
    http_request: Request,
) -> QuestionnaireSubmitResponse:
    """
    Store the answers and return the chat path.

    Returns 422 listing the unanswered question numbers when incomplete.
    """
    http_request.state.consultation_id = consultation_id
    return await service.submit(consultation_id, request, user)
