"""Consultation chat: transcript, streamed answers, persistence, survey and registration."""

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, replace

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from healthle.core.auth import UserContext
from healthle.core.database import get_db_session
from healthle.core.errors import (
    AuthenticationError,
    HealthleError,
    NotFoundError,
    UpstreamError,
    ValidationFailedError,
)
from healthle.core.logging import get_logger
from healthle.models import ChatMessage, ConsultationData, SurveyResult
from healthle.schemas.account import AuthSession, SignUpRequest
from healthle.schemas.chat import ChatEvent, ChatMessageOut, Sender, SurveyAnswer, SurveyResponse
from healthle.services.accounts import AccountService, ensure_passwords_match
from healthle.services.ai import (
    AIServiceError,
    AssistantClient,
    StreamDecoder,
    SuggestionClient,
    SuggestionDebouncer,
)

logger = get_logger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

LOADING_TEXT = "回答を準備中です..."
STREAM_FAILURE_TEXT = "データの読み込みに失敗しました。リロードをお願いします。"
EMPTY_ANSWER_ERROR = "APIからレスポンスを受信できませんでした"
EMPTY_QUESTION_TEXT = "質問を入力してください。"
REGISTRATION_FAILURE_TEXT = "登録中にエラーが発生しました。もう一度お試しください。"

# Only the first five questionnaire answers go into the opening prompt
PROMPT_QUESTION_LIMIT = 5

REGISTRATION_TRIGGER_ANSWER = "凄く思う"

# Background persistence tasks, held so they are not garbage collected mid-flight
_background_tasks: set[asyncio.Task] = set()


@dataclass(frozen=True)
class TranscriptMessage:
    """A message in the chat as the user sees it."""

    id: str
    text: str
    sender: Sender
    is_question: bool = False

    def to_schema(self) -> ChatMessageOut:
        return ChatMessageOut(
            id=self.id, text=self.text, sender=self.sender, is_question=self.is_question
        )


class Transcript:
    """
    Messages of one chat view in the order they were added.

    Ids are sequential strings. A view that already shows messages passes
    the last id it holds so new ids continue after it.
    """

    def __init__(self, last_id: int = 0) -> None:
        self._messages: list[TranscriptMessage] = []
        self._last_id = last_id

    def continue_after(self, last_id: int) -> None:
        self._last_id = max(self._last_id, last_id)

    def add(self, text: str, sender: Sender, is_question: bool = False) -> TranscriptMessage:
        self._last_id += 1
        message = TranscriptMessage(
            id=str(self._last_id), text=text, sender=sender, is_question=is_question
        )
        self._messages.append(message)
        return message

    def update(self, message_id: str, text: str) -> TranscriptMessage | None:
        for index, message in enumerate(self._messages):
            if message.id == message_id:
                self._messages[index] = replace(message, text=text)
                return self._messages[index]
        return None

    def get(self, message_id: str) -> TranscriptMessage | None:
        return next((m for m in self._messages if m.id == message_id), None)

    @property
    def messages(self) -> list[TranscriptMessage]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)


@dataclass(frozen=True)
class MessageTarget:
    """Where messages of a chat are stored: a consultation or a saved session."""

    consultation_id: str | None = None
    chat_session_id: str | None = None

    @property
    def key(self) -> str:
        return self.consultation_id or f"session:{self.chat_session_id}"


def build_initial_prompt(data: ConsultationData) -> str:
    """Opening prompt: questionnaire answers, then the concern."""
    questionnaire = "\n\n".join(
        f"質問: {question}\n回答: {answer}"
        for question, answer in data.answered_pairs(PROMPT_QUESTION_LIMIT)
    )
    return (
        "ユーザーの質問票の回答:\n"
        f"{questionnaire}\n\n"
        "ユーザーの相談内容:\n"
        f"{data.concern}\n\n"
        "上記の情報を踏まえて、システムプロンプトに則りユーザーの相談に回答してください。"
    )


async def wait_for_background_tasks(timeout: float | None = None) -> None:
    """Wait for pending background persistence, e.g. on shutdown."""
    if _background_tasks:
        await asyncio.wait(set(_background_tasks), timeout=timeout)


class ChatService:
    """
    Streams assistant answers into a chat and stores the conversation.

    User messages are written in the background and never block the stream;
    the finished answer is written before suggestions are fetched. The
    service opens its own database sessions because streaming outlives the
    request handler.
    """

    def __init__(
        self,
        session_factory: SessionFactory | None = None,
        assistant: AssistantClient | None = None,
        suggestions: SuggestionClient | None = None,
        debouncer: SuggestionDebouncer | None = None,
    ) -> None:
        self._session_factory = session_factory or get_db_session
        self.assistant = assistant or AssistantClient()
        self.suggestions = suggestions or SuggestionClient()
        self.debouncer = debouncer
        self.transcript = Transcript()

    async def load_consultation(
        self,
        consultation_id: str,
        user: UserContext | None = None,
    ) -> ConsultationData:
        """
        Load the questionnaire row of a consultation.

        A consultation owned by an account is only available to that account.

        Raises:
            NotFoundError: If the questionnaire was never submitted or the
                consultation belongs to someone else
        """
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(ConsultationData)
                    .where(ConsultationData.consultation_id == consultation_id)
                    .order_by(ConsultationData.created_at.desc())
                    .limit(1)
                )
                data = result.scalars().first()
        except SQLAlchemyError as e:
            logger.error("Error loading consultation", consultation_id=consultation_id, error=str(e))
            raise UpstreamError("データの取得に失敗しました。リロードをお願いします。") from None

        if data is None:
            raise NotFoundError("相談データが見つかりません。")
        if data.uid and data.uid != (user.user_id if user else None):
            logger.warning("Consultation of another account requested", consultation_id=consultation_id)
            raise NotFoundError("相談データが見つかりません。")
        return data

    async def start(
        self,
        data: ConsultationData,
        user: UserContext | None = None,
    ) -> AsyncIterator[ChatEvent]:
        """Post the concern and stream the first answer."""
        uid = user.user_id if user else None
        target = MessageTarget(consultation_id=data.consultation_id)

        concern = self.transcript.add(data.concern, "user")
        yield ChatEvent(type="message", message=concern.to_schema())
        self._persist_in_background(concern, target, uid)

        placeholder = self.transcript.add(LOADING_TEXT, "ai")
        yield ChatEvent(type="message", message=placeholder.to_schema())

        async for event in self._stream_answer(
            build_initial_prompt(data), placeholder, data.thread_id, target, uid
        ):
            yield event

        # Anonymous users are asked the satisfaction survey after the first answer
        yield ChatEvent(type="done", show_survey=user is None)

    def ask(
        self,
        text: str,
        target: MessageTarget,
        thread_id: str | None = None,
        user: UserContext | None = None,
        last_message_id: int = 0,
    ) -> AsyncIterator[ChatEvent]:
        """
        Post a follow-up question and stream its answer.

        New message ids continue after `last_message_id`, the last id the
        chat view already shows.

        Raises:
            ValidationFailedError: If the question is blank
        """
        if not text.strip():
            raise ValidationFailedError(EMPTY_QUESTION_TEXT)
        self.transcript.continue_after(last_message_id)
        return self._ask_stream(text, target, thread_id, user.user_id if user else None)

    async def _ask_stream(
        self,
        text: str,
        target: MessageTarget,
        thread_id: str | None,
        uid: str | None,
    ) -> AsyncIterator[ChatEvent]:
        question = self.transcript.add(text, "user", is_question=True)
        yield ChatEvent(type="message", message=question.to_schema())
        self._persist_in_background(question, target, uid)

        placeholder = self.transcript.add(LOADING_TEXT, "ai")
        yield ChatEvent(type="message", message=placeholder.to_schema())

        async for event in self._stream_answer(text, placeholder, thread_id, target, uid):
            yield event

        yield ChatEvent(type="done")

    async def _stream_answer(
        self,
        prompt: str,
        placeholder: TranscriptMessage,
        thread_id: str | None,
        target: MessageTarget,
        uid: str | None,
    ) -> AsyncIterator[ChatEvent]:
        """
        Stream the assistant's answer into the placeholder message.

        Any failure replaces the partial answer with a fixed message; there
        is no retry.
        """
        decoder = StreamDecoder()

        try:
            async with self.assistant.open_stream(prompt, thread_id) as stream:
                if stream.thread_id:
                    yield ChatEvent(type="thread", thread_id=stream.thread_id)
                    if stream.thread_id != thread_id:
                        await self._save_thread_id(target, stream.thread_id)

                async for line in stream.lines:
                    if decoder.feed(line):
                        self.transcript.update(placeholder.id, decoder.text)
                        yield ChatEvent(type="delta", message_id=placeholder.id, text=decoder.text)

            if not decoder.text:
                raise AIServiceError(EMPTY_ANSWER_ERROR)

        except Exception as e:
            logger.error(
                "Answer stream failed",
                target=target.key,
                error=str(e),
                received_length=len(decoder.text),
            )
            self.transcript.update(placeholder.id, STREAM_FAILURE_TEXT)
            yield ChatEvent(type="error", message_id=placeholder.id, text=STREAM_FAILURE_TEXT)
            return

        answer = self.transcript.get(placeholder.id)
        await self._persist_message(answer, target, uid)

        suggestions = await self._fetch_suggestions(target.key, decoder.text)
        if suggestions:
            yield ChatEvent(type="suggestions", suggestions=suggestions)

    async def _fetch_suggestions(self, key: str, answer: str) -> list[str] | None:
        if not self.suggestions.is_available():
            return None
        if self.debouncer is not None and not await self.debouncer.acquire(key):
            return None
        try:
            return await self.suggestions.fetch(answer)
        except AIServiceError as e:
            logger.error("Error fetching chat suggestions", error=e.message)
            return None

    def _persist_in_background(
        self,
        message: TranscriptMessage,
        target: MessageTarget,
        uid: str | None,
    ) -> None:
        task = asyncio.create_task(self._persist_message(message, target, uid))
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)

    async def _persist_message(
        self,
        message: TranscriptMessage,
        target: MessageTarget,
        uid: str | None,
    ) -> None:
        """Insert a message row; failures are logged only."""
        if not target.consultation_id and not target.chat_session_id:
            logger.error("No consultation or session to store message in")
            return

        try:
            async with self._session_factory() as db:
                db.add(
                    ChatMessage(
                        consultation_id=target.consultation_id,
                        chat_session_id=target.chat_session_id,
                        sender=message.sender,
                        message=message.text,
                        is_question=message.is_question,
                        uid=uid,
                    )
                )
        except Exception as e:
            logger.error(
                "Error saving chat message",
                target=target.key,
                sender=message.sender,
                error=str(e),
            )
            return

        logger.debug("Chat message saved", target=target.key, sender=message.sender)

    async def _save_thread_id(self, target: MessageTarget, thread_id: str) -> None:
        """Remember the assistant thread on the consultation; failures are logged only."""
        if not target.consultation_id:
            return
        try:
            async with self._session_factory() as db:
                await db.execute(
                    update(ConsultationData)
                    .where(ConsultationData.consultation_id == target.consultation_id)
                    .values(thread_id=thread_id)
                )
        except Exception as e:
            logger.error("Error saving thread id", target=target.key, error=str(e))


class SurveyService:
    """Satisfaction survey and the account registration it can lead to."""

    def __init__(self, db: AsyncSession, accounts: AccountService | None = None) -> None:
        self.db = db
        self.accounts = accounts or AccountService()

    async def submit(
        self,
        consultation_id: str,
        answer: SurveyAnswer,
        user: UserContext | None = None,
    ) -> SurveyResponse:
        """Store a survey answer; the strongest answer from a guest offers registration."""
        try:
            self.db.add(
                SurveyResult(
                    consultation_id=consultation_id,
                    answer=answer,
                    uid=user.user_id if user else None,
                )
            )
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error("Error saving survey result", consultation_id=consultation_id, error=str(e))
            raise UpstreamError("アンケート結果の保存に失敗しました。") from None

        return SurveyResponse(
            show_registration=answer == REGISTRATION_TRIGGER_ANSWER and user is None
        )

    async def register(self, consultation_id: str, request: SignUpRequest) -> AuthSession:
        """
        Create an account and give it the guest's consultation.

        Only rows without an owner are moved to the new account.

        Raises:
            ValidationFailedError: If the passwords differ
            AuthenticationError: If sign-up is rejected
            UpstreamError: If the consultation rows cannot be re-owned
        """
        ensure_passwords_match(request.password, request.confirm_password)

        try:
            session = await self.accounts.sign_up(request.email, request.password)
        except HealthleError as e:
            logger.error("Registration failed", consultation_id=consultation_id, error=e.message)
            raise AuthenticationError(REGISTRATION_FAILURE_TEXT) from None

        try:
            await self.db.execute(
                update(ChatMessage)
                .where(ChatMessage.consultation_id == consultation_id)
                .where(ChatMessage.uid.is_(None))
                .values(uid=session.user_id)
            )
            await self.db.execute(
                update(ConsultationData)
                .where(ConsultationData.consultation_id == consultation_id)
                .where(ConsultationData.uid.is_(None))
                .values(uid=session.user_id)
            )
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error("Error assigning consultation to account", consultation_id=consultation_id, error=str(e))
            raise UpstreamError(REGISTRATION_FAILURE_TEXT) from None

        logger.info("Consultation assigned to new account", consultation_id=consultation_id, user_id=session.user_id)

        if session.access_token:
            return session

        # Sign-up without a session (confirmation pending): try signing in directly
        try:
            return await self.accounts.sign_in(request.email, request.password)
        except HealthleError as e:
            logger.info("Sign-in after registration not possible yet", error=e.message)
            return session
