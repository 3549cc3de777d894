"""Tests for the chat service, transcript and survey."""

import json
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest

from healthle.core.errors import AuthenticationError, NotFoundError, ValidationFailedError
from healthle.models import ChatMessage, ConsultationData
from healthle.schemas.account import AuthSession, SignUpRequest
from healthle.services.ai import AIServiceError, AssistantStream
from healthle.services.chat import (
    LOADING_TEXT,
    STREAM_FAILURE_TEXT,
    ChatService,
    MessageTarget,
    SurveyService,
    Transcript,
    build_initial_prompt,
    wait_for_background_tasks,
)


def _line(text: str) -> str:
    payload = {"delta": {"content": [{"text": {"value": text}}]}}
    return f"data: {json.dumps(payload, ensure_ascii=False)}"


class FakeAssistant:
    """Assistant that replays fixed body lines, or fails."""

    def __init__(self, lines=(), thread_id="thread_new", error=None):
        self.lines = list(lines)
        self.thread_id = thread_id
        self.error = error
        self.calls = []

    @asynccontextmanager
    async def open_stream(self, message, thread_id=None):
        self.calls.append((message, thread_id))
        if self.error:
            raise self.error

        async def body():
            for line in self.lines:
                yield line

        yield AssistantStream(thread_id=self.thread_id, lines=body())


def _consultation_data(**overrides) -> ConsultationData:
    data = ConsultationData(
        consultation_id="c-1",
        concern="寝つきが悪い",
        thread_id=None,
        question_1="年代",
        answer_1="30代",
        question_2="喫煙していますか？",
        answer_2="いいえ",
    )
    for key, value in overrides.items():
        setattr(data, key, value)
    return data


@pytest.fixture
def suggestions():
    client = MagicMock()
    client.is_available.return_value = True
    client.fetch = AsyncMock(return_value=["他に気をつけることは？", "運動は効果がありますか？"])
    return client


@pytest.fixture
def debouncer():
    gate = MagicMock()
    gate.acquire = AsyncMock(return_value=True)
    return gate


async def _collect(events):
    collected = [event async for event in events]
    await wait_for_background_tasks()
    return collected


class TestTranscript:
    """Tests for Transcript."""

    def test_ids_follow_call_order(self):
        transcript = Transcript()
        first = transcript.add("質問", "user")
        second = transcript.add(LOADING_TEXT, "ai")
        third = transcript.add("追加質問", "user", is_question=True)

        assert [first.id, second.id, third.id] == ["1", "2", "3"]
        assert [m.sender for m in transcript.messages] == ["user", "ai", "user"]
        assert third.is_question is True

    def test_update_replaces_text(self):
        transcript = Transcript()
        message = transcript.add(LOADING_TEXT, "ai")

        transcript.update(message.id, "回答")

        assert transcript.get(message.id).text == "回答"
        assert transcript.update("missing", "x") is None

    def test_ids_continue_after_last_shown_id(self):
        transcript = Transcript(last_id=4)

        assert transcript.add("質問", "user").id == "5"

        transcript.continue_after(2)
        assert transcript.add(LOADING_TEXT, "ai").id == "6"

        transcript.continue_after(10)
        assert transcript.add("追加質問", "user").id == "11"


class TestInitialPrompt:
    """Tests for build_initial_prompt."""

    def test_contains_answers_and_concern(self):
        prompt = build_initial_prompt(_consultation_data())

        assert prompt.startswith("ユーザーの質問票の回答:\n質問: 年代\n回答: 30代\n\n質問: 喫煙していますか？")
        assert "ユーザーの相談内容:\n寝つきが悪い" in prompt
        assert prompt.endswith("上記の情報を踏まえて、システムプロンプトに則りユーザーの相談に回答してください。")

    def test_only_first_five_questions_used(self):
        extra = {}
        for n in range(3, 9):
            extra[f"question_{n}"] = f"質問{n}"
            extra[f"answer_{n}"] = f"回答{n}"

        prompt = build_initial_prompt(_consultation_data(**extra))

        assert "質問5" in prompt
        assert "質問6" not in prompt


class TestLoadConsultation:
    """Tests for ChatService.load_consultation."""

    @pytest.mark.asyncio
    async def test_guest_consultation_open_to_anyone(
        self, session_factory, mock_db_session, scalars_result, user
    ):
        """Test a consultation without an owner loads for guests and accounts."""
        mock_db_session.execute.return_value = scalars_result([_consultation_data(uid=None)])
        service = ChatService(session_factory, FakeAssistant(), MagicMock(), MagicMock())

        assert (await service.load_consultation("c-1")).consultation_id == "c-1"
        assert (await service.load_consultation("c-1", user)).consultation_id == "c-1"

    @pytest.mark.asyncio
    async def test_owner_can_load(self, session_factory, mock_db_session, scalars_result, user):
        """Test the owning account loads its consultation."""
        mock_db_session.execute.return_value = scalars_result([_consultation_data(uid="test-user-id")])
        service = ChatService(session_factory, FakeAssistant(), MagicMock(), MagicMock())

        data = await service.load_consultation("c-1", user)

        assert data.uid == "test-user-id"

    @pytest.mark.asyncio
    async def test_other_account_gets_not_found(
        self, session_factory, mock_db_session, scalars_result, user
    ):
        """Test a consultation owned by another account is reported missing."""
        mock_db_session.execute.return_value = scalars_result([_consultation_data(uid="other-user")])
        service = ChatService(session_factory, FakeAssistant(), MagicMock(), MagicMock())

        with pytest.raises(NotFoundError):
            await service.load_consultation("c-1", user)

    @pytest.mark.asyncio
    async def test_guest_cannot_load_owned_consultation(
        self, session_factory, mock_db_session, scalars_result
    ):
        """Test an anonymous caller cannot open a consultation that has an owner."""
        mock_db_session.execute.return_value = scalars_result([_consultation_data(uid="other-user")])
        service = ChatService(session_factory, FakeAssistant(), MagicMock(), MagicMock())

        with pytest.raises(NotFoundError):
            await service.load_consultation("c-1")

    @pytest.mark.asyncio
    async def test_missing_questionnaire(self, session_factory, mock_db_session, scalars_result):
        """Test a consultation without questionnaire data is not found."""
        mock_db_session.execute.return_value = scalars_result([])
        service = ChatService(session_factory, FakeAssistant(), MagicMock(), MagicMock())

        with pytest.raises(NotFoundError):
            await service.load_consultation("c-1")


class TestChatServiceStart:
    """Tests for ChatService.start."""

    @pytest.mark.asyncio
    async def test_streams_answer_and_persists(self, session_factory, mock_db_session, suggestions, debouncer):
        assistant = FakeAssistant(lines=[_line("睡眠の"), _line("リズムを整えましょう。")])
        service = ChatService(session_factory, assistant, suggestions, debouncer)

        events = await _collect(service.start(_consultation_data()))

        types = [event.type for event in events]
        assert types == ["message", "message", "thread", "delta", "delta", "suggestions", "done"]
        assert events[0].message.text == "寝つきが悪い"
        assert events[1].message.text == LOADING_TEXT
        assert events[2].thread_id == "thread_new"
        assert events[4].text == "睡眠のリズムを整えましょう。"
        assert events[-1].show_survey is True
        assert service.transcript.get("2").text == "睡眠のリズムを整えましょう。"

        saved = [call.args[0] for call in mock_db_session.add.call_args_list]
        assert all(isinstance(row, ChatMessage) for row in saved)
        assert sorted(row.sender for row in saved) == ["ai", "user"]
        ai_row = next(row for row in saved if row.sender == "ai")
        assert ai_row.message == "睡眠のリズムを整えましょう。"
        assert ai_row.consultation_id == "c-1"

        # Thread id written back to consultation_data
        assert mock_db_session.execute.await_count == 1
        suggestions.fetch.assert_awaited_once_with("睡眠のリズムを整えましょう。")

    @pytest.mark.asyncio
    async def test_signed_in_user_gets_no_survey(self, session_factory, suggestions, debouncer, user):
        assistant = FakeAssistant(lines=[_line("回答")])
        service = ChatService(session_factory, assistant, suggestions, debouncer)

        events = await _collect(service.start(_consultation_data(), user))

        assert events[-1].type == "done"
        assert events[-1].show_survey is False

    @pytest.mark.asyncio
    async def test_stream_failure_replaces_text(self, session_factory, mock_db_session, suggestions, debouncer):
        assistant = FakeAssistant(error=AIServiceError("HTTP error! status: 500", 500))
        service = ChatService(session_factory, assistant, suggestions, debouncer)

        events = await _collect(service.start(_consultation_data()))

        error = next(event for event in events if event.type == "error")
        assert error.text == STREAM_FAILURE_TEXT
        assert error.message_id == "2"
        assert service.transcript.get("2").text == STREAM_FAILURE_TEXT
        assert not suggestions.fetch.called
        senders = [call.args[0].sender for call in mock_db_session.add.call_args_list]
        assert senders == ["user"]

    @pytest.mark.asyncio
    async def test_empty_answer_is_a_failure(self, session_factory, suggestions, debouncer):
        assistant = FakeAssistant(lines=['data: {"status": "completed"}'])
        service = ChatService(session_factory, assistant, suggestions, debouncer)

        events = await _collect(service.start(_consultation_data()))

        assert "error" in [event.type for event in events]
        assert service.transcript.get("2").text == STREAM_FAILURE_TEXT

    @pytest.mark.asyncio
    async def test_known_thread_reused(self, session_factory, mock_db_session, suggestions, debouncer):
        assistant = FakeAssistant(lines=[_line("回答")], thread_id="thread_old")
        service = ChatService(session_factory, assistant, suggestions, debouncer)

        await _collect(service.start(_consultation_data(thread_id="thread_old")))

        assert assistant.calls[0][1] == "thread_old"
        assert not mock_db_session.execute.called

    @pytest.mark.asyncio
    async def test_debounced_suggestions_skipped(self, session_factory, suggestions, debouncer):
        debouncer.acquire.return_value = False
        service = ChatService(session_factory, FakeAssistant(lines=[_line("回答")]), suggestions, debouncer)

        events = await _collect(service.start(_consultation_data()))

        assert "suggestions" not in [event.type for event in events]
        assert not suggestions.fetch.called

    @pytest.mark.asyncio
    async def test_suggestion_failure_is_quiet(self, session_factory, suggestions, debouncer):
        suggestions.fetch.side_effect = AIServiceError("HTTP error! status: 502", 502)
        service = ChatService(session_factory, FakeAssistant(lines=[_line("回答")]), suggestions, debouncer)

        events = await _collect(service.start(_consultation_data()))

        assert [event.type for event in events][-2:] == ["delta", "done"]

    @pytest.mark.asyncio
    async def test_persistence_failure_does_not_break_stream(self, suggestions, debouncer):
        @asynccontextmanager
        async def broken_factory():
            raise RuntimeError("database unavailable")
            yield

        service = ChatService(broken_factory, FakeAssistant(lines=[_line("回答")]), suggestions, debouncer)

        events = await _collect(service.start(_consultation_data()))

        assert "error" not in [event.type for event in events]
        assert service.transcript.get("2").text == "回答"


class TestChatServiceAsk:
    """Tests for ChatService.ask."""

    def test_blank_question_rejected(self, session_factory, suggestions, debouncer):
        service = ChatService(session_factory, FakeAssistant(), suggestions, debouncer)

        with pytest.raises(ValidationFailedError):
            service.ask("   ", MessageTarget(consultation_id="c-1"))

    @pytest.mark.asyncio
    async def test_question_marked_and_thread_forwarded(
        self, session_factory, mock_db_session, suggestions, debouncer
    ):
        assistant = FakeAssistant(lines=[_line("はい。")], thread_id="thread_1")
        service = ChatService(session_factory, assistant, suggestions, debouncer)

        events = await _collect(
            service.ask("運動は効果がありますか？", MessageTarget(consultation_id="c-1"), thread_id="thread_1")
        )

        assert events[0].message.is_question is True
        assert assistant.calls == [("運動は効果がありますか？", "thread_1")]
        assert events[-1].type == "done"
        assert events[-1].show_survey is None

    @pytest.mark.asyncio
    async def test_session_messages_use_session_id(
        self, session_factory, mock_db_session, suggestions, debouncer
    ):
        assistant = FakeAssistant(lines=[_line("はい。")], thread_id="thread_1")
        service = ChatService(session_factory, assistant, suggestions, debouncer)

        await _collect(
            service.ask("続きです", MessageTarget(chat_session_id="s-1"), thread_id="thread_1")
        )

        rows = [call.args[0] for call in mock_db_session.add.call_args_list]
        assert {row.chat_session_id for row in rows} == {"s-1"}
        assert {row.consultation_id for row in rows} == {None}
        debouncer.acquire.assert_awaited_once_with("session:s-1")

    @pytest.mark.asyncio
    async def test_follow_up_ids_continue_after_start(self, session_factory, suggestions, debouncer):
        """Test a follow-up on a new request does not reuse the ids of the first answer."""
        first = ChatService(session_factory, FakeAssistant(lines=[_line("回答")]), suggestions, debouncer)
        start_events = await _collect(first.start(_consultation_data()))
        start_ids = {event.message.id for event in start_events if event.type == "message"}

        second = ChatService(session_factory, FakeAssistant(lines=[_line("はい。")]), suggestions, debouncer)
        ask_events = await _collect(
            second.ask(
                "運動は？",
                MessageTarget(consultation_id="c-1"),
                thread_id="thread_new",
                last_message_id=max(int(message_id) for message_id in start_ids),
            )
        )
        ask_ids = {event.message.id for event in ask_events if event.type == "message"}

        assert start_ids == {"1", "2"}
        assert ask_ids == {"3", "4"}
        assert {event.message_id for event in ask_events if event.type == "delta"} == {"4"}


class TestSurveyService:
    """Tests for SurveyService."""

    @pytest.mark.asyncio
    async def test_strongly_agree_offers_registration(self, mock_db_session):
        service = SurveyService(mock_db_session, accounts=MagicMock())

        response = await service.submit("c-1", "凄く思う")

        assert response.show_registration is True
        row = mock_db_session.add.call_args.args[0]
        assert row.consultation_id == "c-1"
        assert row.answer == "凄く思う"

    @pytest.mark.asyncio
    async def test_other_answers_do_not(self, mock_db_session):
        service = SurveyService(mock_db_session, accounts=MagicMock())

        response = await service.submit("c-1", "少し思う")

        assert response.show_registration is False

    @pytest.mark.asyncio
    async def test_signed_in_user_not_offered(self, mock_db_session, user):
        service = SurveyService(mock_db_session, accounts=MagicMock())

        response = await service.submit("c-1", "凄く思う", user)

        assert response.show_registration is False

    @pytest.mark.asyncio
    async def test_register_password_mismatch(self, mock_db_session):
        accounts = MagicMock()
        accounts.sign_up = AsyncMock()
        service = SurveyService(mock_db_session, accounts=accounts)
        request = SignUpRequest(email="a@example.com", password="secret1", confirm_password="secret2")

        with pytest.raises(ValidationFailedError) as exc_info:
            await service.register("c-1", request)

        assert exc_info.value.message == "パスワードが一致しません。"
        assert not accounts.sign_up.called

    @pytest.mark.asyncio
    async def test_register_reassigns_consultation(self, mock_db_session):
        accounts = MagicMock()
        accounts.sign_up = AsyncMock(return_value=AuthSession(user_id="new-user", email="a@example.com"))
        accounts.sign_in = AsyncMock(
            return_value=AuthSession(access_token="token", user_id="new-user", email="a@example.com")
        )
        service = SurveyService(mock_db_session, accounts=accounts)
        request = SignUpRequest(email="a@example.com", password="secret1", confirm_password="secret1")

        session = await service.register("c-1", request)

        assert session.access_token == "token"
        assert mock_db_session.execute.await_count == 2
        accounts.sign_in.assert_awaited_once_with("a@example.com", "secret1")

    @pytest.mark.asyncio
    async def test_register_only_takes_unowned_rows(self, mock_db_session):
        """Test the re-owning updates leave rows of other accounts untouched."""
        accounts = MagicMock()
        accounts.sign_up = AsyncMock(
            return_value=AuthSession(access_token="token", user_id="new-user", email="a@example.com")
        )
        service = SurveyService(mock_db_session, accounts=accounts)
        request = SignUpRequest(email="a@example.com", password="secret1", confirm_password="secret1")

        await service.register("c-1", request)

        statements = [str(call.args[0]) for call in mock_db_session.execute.await_args_list]
        assert [statement.split()[1] for statement in statements] == ["chat_messages", "consultation_data"]
        for statement in statements:
            assert "consultation_id = " in statement
            assert "uid IS NULL" in statement

    @pytest.mark.asyncio
    async def test_register_sign_up_rejected(self, mock_db_session):
        accounts = MagicMock()
        accounts.sign_up = AsyncMock(side_effect=AuthenticationError("User already registered"))
        service = SurveyService(mock_db_session, accounts=accounts)
        request = SignUpRequest(email="a@example.com", password="secret1", confirm_password="secret1")

        with pytest.raises(AuthenticationError) as exc_info:
            await service.register("c-1", request)

        assert exc_info.value.message == "登録中にエラーが発生しました。もう一度お試しください。"
        assert not mock_db_session.execute.called
