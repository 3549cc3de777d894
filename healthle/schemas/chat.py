"""Schemas for the chat page and saved chat sessions."""

from typing import Literal

from pydantic import BaseModel, Field

Sender = Literal["user", "ai"]
SurveyAnswer = Literal["凄く思う", "少し思う", "あまり思わない", "全く思わない"]
ChatEventType = Literal["message", "delta", "thread", "suggestions", "error", "done"]


class ChatMessageOut(BaseModel):
    """A message as displayed in the chat."""

    id: str
    text: str
    sender: Sender
    is_question: bool = False


class AskRequest(BaseModel):
    """A follow-up question typed into the chat."""

    message: str
    thread_id: str | None = Field(
        default=None, description="Assistant thread to continue, if already known"
    )
    last_message_id: int = Field(
        default=0,
        ge=0,
        description="Last numeric message id the chat view shows; new ids continue after it",
    )


class ChatEvent(BaseModel):
    """
    One server-sent event of a chat stream.

    - message: a message was appended (`message`)
    - delta: the answer being streamed grew (`message_id`, `text` is the full text so far)
    - thread: the assistant announced its thread (`thread_id`)
    - suggestions: follow-up question candidates (`suggestions`)
    - error: the answer failed (`message_id`, `text` is the replacement text)
    - done: the stream is complete (`show_survey` after a first answer)
    """

    type: ChatEventType
    message: ChatMessageOut | None = None
    message_id: str | None = None
    text: str | None = None
    thread_id: str | None = None
    suggestions: list[str] | None = None
    show_survey: bool | None = None

    def to_sse(self) -> dict[str, str]:
        """Event name and JSON data for EventSourceResponse."""
        return {"event": self.type, "data": self.model_dump_json(exclude_none=True)}


class SurveyRequest(BaseModel):
    """Answer to 健康に悩んだ時にまた相談したいですか？"""

    answer: SurveyAnswer


class SurveyResponse(BaseModel):
    """Whether to offer account registration next."""

    show_registration: bool


class ConversationResponse(BaseModel):
    """Saved messages of a consultation or chat session."""

    messages: list[ChatMessageOut]
    thread_id: str | None = None
