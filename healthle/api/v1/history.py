"""History endpoints: past consultations and saved chat sessions."""

from fastapi import APIRouter, Request
from sse_starlette.sse import EventSourceResponse

from healthle.api.v1.chat import event_stream_response
from healthle.dependencies import ChatServiceDep, CurrentUser, HistoryServiceDep, OptionalUser
from healthle.schemas.chat import AskRequest, ConversationResponse
from healthle.schemas.history import PastConsultationsResponse
from healthle.services.chat import MessageTarget

router = APIRouter(prefix="/history", tags=["history"])


@router.get("/consultations", response_model=PastConsultationsResponse)
async def list_past_consultations(
    service: HistoryServiceDep,
    user: CurrentUser,
) -> PastConsultationsResponse:
    """The signed-in user's consultations, newest first."""
    return PastConsultationsResponse(
        consultations=await service.past_consultations(user.user_id)
    )


@router.get("/consultations/{consultation_id}", response_model=ConversationResponse)
async def get_consultation_messages(
    consultation_id: str,
    service: HistoryServiceDep,
    user: OptionalUser,
    http_request: Request,
) -> ConversationResponse:
    """
    Messages of a consultation.

    Returns 404 for consultations owned by another account.
    """
    http_request.state.consultation_id = consultation_id
    return await service.consultation_messages(
        consultation_id, user.user_id if user else None
    )


@router.get("/sessions/{thread_id}", response_model=ConversationResponse)
async def get_session_messages(thread_id: str, service: HistoryServiceDep) -> ConversationResponse:
    """Messages of a saved chat session."""
    return await service.session_messages(thread_id)


@router.post("/sessions/{thread_id}/messages")
async def continue_session(
    thread_id: str,
    request: AskRequest,
    history: HistoryServiceDep,
    chat: ChatServiceDep,
    user: OptionalUser,
) -> EventSourceResponse:
    """Ask a question in a saved chat session and stream the answer."""
    session = await history.get_session(thread_id)
    events = chat.ask(
        request.message,
        MessageTarget(chat_session_id=str(session.id)),
        thread_id=thread_id,
        user=user,
        last_message_id=request.last_message_id,
    )
    return event_stream_response(events)
