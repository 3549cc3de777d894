"""Chat endpoints: streamed answers, survey and registration."""

from collections.abc import AsyncIterator

from fastapi import APIRouter, Request
from sse_starlette.sse import EventSourceResponse

from healthle.core.logging import get_logger
from healthle.dependencies import ChatServiceDep, OptionalUser, SurveyServiceDep
from healthle.schemas.account import AuthSession, SignUpRequest
from healthle.schemas.chat import AskRequest, ChatEvent, SurveyRequest, SurveyResponse
from healthle.services.chat import STREAM_FAILURE_TEXT, MessageTarget

logger = get_logger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


def event_stream_response(events: AsyncIterator[ChatEvent]) -> EventSourceResponse:
    """
    Serve chat events as Server-Sent Events.

    SSE Event Format:
    - event: <type>, data: {"type": "<type>", ...}
    """
    async def event_generator() -> AsyncIterator[dict]:
        try:
            async for event in events:
                yield event.to_sse()
        except Exception as e:
            logger.error("Chat stream failed", error=str(e))
            yield ChatEvent(type="error", text=STREAM_FAILURE_TEXT).to_sse()
            yield ChatEvent(type="done").to_sse()

    return EventSourceResponse(event_generator(), sep="\n")


@router.post("/{consultation_id}/start")
async def start_chat(
    consultation_id: str,
    service: ChatServiceDep,
    user: OptionalUser,
    http_request: Request,
) -> EventSourceResponse:
    """
    Post the concern and stream the first answer.

    Returns 404 if the questionnaire of the consultation was never submitted
    or the consultation belongs to another account.
    The final `done` event carries `show_survey` for anonymous users.
    """
    http_request.state.consultation_id = consultation_id
    data = await service.load_consultation(consultation_id, user)

    logger.info(
        "Chat start request",
        consultation_id=consultation_id,
        has_thread=data.thread_id is not None,
    )

    return event_stream_response(service.start(data, user))


@router.post("/{consultation_id}/messages")
async def ask_question(
    consultation_id: str,
    request: AskRequest,
    service: ChatServiceDep,
    user: OptionalUser,
    http_request: Request,
) -> EventSourceResponse:
    """Post a follow-up question and stream its answer."""
    http_request.state.consultation_id = consultation_id

    data = await service.load_consultation(consultation_id, user)
    thread_id = request.thread_id or data.thread_id

    events = service.ask(
        request.message,
        MessageTarget(consultation_id=consultation_id),
        thread_id=thread_id,
        user=user,
        last_message_id=request.last_message_id,
    )
    return event_stream_response(events)


@router.post("/{consultation_id}/survey", response_model=SurveyResponse)
async def submit_survey(
    consultation_id: str,
    request: SurveyRequest,
    service: SurveyServiceDep,
    user: OptionalUser,
    http_request: Request,
) -> SurveyResponse:
    """Store the satisfaction survey answer."""
    http_request.state.consultation_id = consultation_id
    return await service.submit(consultation_id, request.answer, user)


@router.post("/{consultation_id}/register", response_model=AuthSession)
async def register(
    consultation_id: str,
    request: SignUpRequest,
    service: SurveyServiceDep,
    http_request: Request,
) -> AuthSession:
    """Create an account that takes over this consultation."""
    http_request.state.consultation_id = consultation_id
    return await service.register(consultation_id, request)
