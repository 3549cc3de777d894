"""Past consultations and saved chat sessions."""

from datetime import datetime
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from healthle.core.errors import NotFoundError, UpstreamError
from healthle.core.logging import get_logger
from healthle.models import ChatMessage, ChatSession, ConsultationData
from healthle.schemas.chat import ChatMessageOut, ConversationResponse
from healthle.schemas.history import PastConsultation
from healthle.services.dashboard import encode_component

logger = get_logger(__name__)

DISPLAY_TIMEZONE = ZoneInfo("Asia/Tokyo")


def format_date_label(value: datetime) -> str:
    """2024-10-10T03:00Z -> 2024年10月10日 (Japan time)."""
    local = _to_display_time(value)
    return f"{local.year}年{local.month}月{local.day}日"


def format_time_label(value: datetime) -> str:
    """2024-10-10T03:00Z -> 12:00 (Japan time)."""
    return _to_display_time(value).strftime("%H:%M")


def _to_display_time(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=ZoneInfo("UTC"))
    return value.astimezone(DISPLAY_TIMEZONE)


def history_path(consultation_id: str) -> str:
    """Path of the read-only chat history page for a consultation."""
    return f"/chathistory?id={encode_component(consultation_id)}"


def _to_message_out(row: ChatMessage) -> ChatMessageOut:
    return ChatMessageOut(
        id=str(row.id),
        text=row.message,
        sender="user" if row.sender == "user" else "ai",
        is_question=bool(row.is_question),
    )


class HistoryService:
    """Read access to stored consultations and conversations."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def past_consultations(self, uid: str) -> list[PastConsultation]:
        """The user's consultations, newest first."""
        try:
            result = await self.db.execute(
                select(ConsultationData)
                .where(ConsultationData.uid == uid)
                .order_by(ConsultationData.created_at.desc())
            )
        except SQLAlchemyError as e:
            logger.error("Error fetching past consultations", user_id=uid, error=str(e))
            raise UpstreamError("相談履歴の取得に失敗しました。") from None

        consultations = []
        for row in result.scalars().all():
            created_at = row.created_at
            consultations.append(
                PastConsultation(
                    id=str(row.id),
                    consultation_id=row.consultation_id,
                    concern=row.concern,
                    created_at=created_at,
                    date_label=format_date_label(created_at) if created_at else None,
                    time_label=format_time_label(created_at) if created_at else None,
                    redirect_path=history_path(row.consultation_id),
                )
            )
        return consultations

    async def consultation_messages(
        self,
        consultation_id: str,
        uid: str | None = None,
    ) -> ConversationResponse:
        """
        Messages of a consultation in creation order.

        A consultation owned by an account is only shown to that account.

        Raises:
            NotFoundError: If the consultation is unknown or owned by someone else
        """
        data = await self._consultation_data(consultation_id)
        if data is None or (data.uid and data.uid != uid):
            raise NotFoundError("相談が見つかりません。")

        try:
            result = await self.db.execute(
                select(ChatMessage)
                .where(ChatMessage.consultation_id == consultation_id)
                .order_by(ChatMessage.created_at.asc())
            )
        except SQLAlchemyError as e:
            logger.error("Error fetching consultation messages", consultation_id=consultation_id, error=str(e))
            raise UpstreamError("チャット履歴の取得に失敗しました。") from None

        return ConversationResponse(
            messages=[_to_message_out(row) for row in result.scalars().all()],
            thread_id=data.thread_id,
        )

    async def get_session(self, thread_id: str) -> ChatSession:
        """
        Saved chat session of an assistant thread.

        Raises:
            NotFoundError: If no session exists for the thread
        """
        try:
            result = await self.db.execute(
                select(ChatSession).where(ChatSession.thread_id == thread_id)
            )
        except SQLAlchemyError as e:
            logger.error("Error fetching chat session", thread_id=thread_id, error=str(e))
            raise UpstreamError("チャットセッションの取得に失敗しました。") from None

        session = result.scalar_one_or_none()
        if session is None:
            raise NotFoundError("チャットセッションが見つかりません。")
        return session

    async def session_messages(self, thread_id: str) -> ConversationResponse:
        """Messages of a saved chat session in creation order."""
        session = await self.get_session(thread_id)

        try:
            result = await self.db.execute(
                select(ChatMessage)
                .where(ChatMessage.chat_session_id == session.id)
                .order_by(ChatMessage.created_at.asc())
            )
        except SQLAlchemyError as e:
            logger.error("Error fetching session messages", thread_id=thread_id, error=str(e))
            raise UpstreamError("チャット履歴の取得に失敗しました。") from None

        return ConversationResponse(
            messages=[_to_message_out(row) for row in result.scalars().all()],
            thread_id=thread_id,
        )

    async def _consultation_data(self, consultation_id: str) -> ConsultationData | None:
        try:
            result = await self.db.execute(
                select(ConsultationData)
                .where(ConsultationData.consultation_id == consultation_id)
                .order_by(ConsultationData.created_at.desc())
                .limit(1)
            )
        except SQLAlchemyError as e:
            logger.error("Error fetching consultation", consultation_id=consultation_id, error=str(e))
            raise UpstreamError("相談データの取得に失敗しました。") from None
        return result.scalars().first()
