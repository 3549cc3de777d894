"""Health questionnaire: question list, answer bookkeeping and submission."""

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from healthle.core.auth import UserContext
from healthle.core.errors import NotFoundError, UpstreamError, ValidationFailedError
from healthle.core.logging import get_logger
from healthle.models import MAX_QUESTION_COLUMNS, Consultation, ConsultationData
from healthle.schemas.questionnaire import (
    Answer,
    AnswerValue,
    Question,
    QuestionnaireResponse,
    QuestionnaireSubmitRequest,
    QuestionnaireSubmitResponse,
)
from healthle.services.ai import AIServiceError, GeneratedQuestion, QuestionnaireClient, SystemPromptClient
from healthle.services.dashboard import encode_component

logger = get_logger(__name__)

NONE_ANSWER = "特になし"
NO_SYSTEM_PROMPT = "No system prompt available"

# Answering 特になし on the fifth question moves on by itself
AUTO_ADVANCE_INDEX = 4

STATIC_QUESTIONS: tuple[Question, ...] = (
    Question(id=1, text="年代", type="select",
             options=["10代", "20代", "30代", "40代", "50代", "60代", "70代以上"]),
    Question(id=2, text="喫煙していますか？", type="select",
             options=["はい", "いいえ", "過去に喫煙していた"]),
    Question(id=3, text="飲酒の頻度", type="select",
             options=["飲まない", "月1回以下", "月2〜4回", "週2〜3回", "週4回以上"]),
    Question(id=4, text="週にどれくらい運動していますか？", type="select",
             options=["運動していない", "週1-2回", "週3回以上"]),
    Question(id=5, text="現在のストレスレベルを教えてください。", type="select",
             options=["低い", "やや低い", "やや高い", "高い"]),
    Question(id=6, text="1日の平均睡眠時間", type="number",
             min=0, max=24, step=0.5, unit="時間"),
    Question(id=7, text="食生活について教えてください。", type="select",
             options=["バランスの取れた食事", "偏った食事", "不規則な食事", "外食が多い", "自炊が多い"]),
    Question(id=8, text="普段の活動レベルを教えてください。", type="select",
             options=["座り仕事が多い", "立ち仕事が多い", "歩き回ることが多い", "肉体労働が多い", "不規則"]),
)


def format_answer(value: AnswerValue) -> str:
    """Render an answer for storage: 7.0 -> "7", lists joined with commas."""
    if isinstance(value, list):
        return ",".join(str(item) for item in value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def chat_path(consultation_id: str, concern: str) -> str:
    """Path of the chat page for a consultation."""
    return f"/chat?id={encode_component(consultation_id)}&concern={encode_component(concern)}"


class Questionnaire:
    """
    A linear walk through the question list.

    Answers are keyed by question text; answering a question again replaces
    the earlier answer in place, so `answers` keeps first-answered order.
    """

    def __init__(self, questions: list[Question] | None = None) -> None:
        self.questions: list[Question] = list(questions) if questions is not None else list(STATIC_QUESTIONS)
        self.current_index = 0
        self.answers: list[Answer] = []

    @property
    def current(self) -> Question:
        return self.questions[self.current_index]

    def answer(self, value: AnswerValue) -> None:
        """Answer the current question."""
        self.record(self.current.text, value)

        if self.current_index == AUTO_ADVANCE_INDEX and value == NONE_ANSWER:
            self.next()

    def record(self, question_text: str, value: AnswerValue) -> None:
        """Store an answer for a question by its text."""
        new_answer = Answer(question=question_text, answer=value)
        for index, existing in enumerate(self.answers):
            if existing.question == question_text:
                self.answers[index] = new_answer
                return
        self.answers.append(new_answer)

    def answer_for(self, question_text: str) -> AnswerValue | None:
        for existing in self.answers:
            if existing.question == question_text:
                return existing.answer
        return None

    def next(self) -> None:
        if self.current_index < len(self.questions) - 1:
            self.current_index += 1

    def previous(self) -> None:
        if self.current_index > 0:
            self.current_index -= 1

    def extend(self, generated: list[GeneratedQuestion]) -> None:
        """Append concern-specific questions after the existing ones."""
        start = len(self.questions)
        for offset, question in enumerate(generated, start=1):
            self.questions.append(
                Question(
                    id=start + offset,
                    text=question.text,
                    type="select-with-other",
                    options=question.choices,
                )
            )

    def unanswered(self) -> list[Question]:
        """Questions without an answer; blank text does not count as one."""
        missing = []
        for question in self.questions:
            value = self.answer_for(question.text)
            if value is None or value == [] or (isinstance(value, str) and not value.strip()):
                missing.append(question)
        return missing

    @property
    def is_complete(self) -> bool:
        return not self.unanswered()

    def flatten(self, limit: int = MAX_QUESTION_COLUMNS) -> dict[str, str]:
        """
        Serialize answers into numbered question/answer columns.

        Columns past the last answer are filled with empty strings.
        """
        if len(self.answers) > limit:
            raise ValueError(f"at most {limit} answers can be stored, got {len(self.answers)}")

        columns: dict[str, str] = {}
        for n, answer in enumerate(self.answers, start=1):
            columns[f"question_{n}"] = answer.question
            columns[f"answer_{n}"] = format_answer(answer.answer)
        for n in range(len(self.answers) + 1, limit + 1):
            columns[f"question_{n}"] = ""
            columns[f"answer_{n}"] = ""
        return columns


def merge_questions(shown: list[Question]) -> list[Question]:
    """Static questions followed by any other shown question, deduplicated by text."""
    merged = list(STATIC_QUESTIONS)
    seen = {question.text for question in merged}
    for question in shown:
        if question.text not in seen:
            merged.append(question)
            seen.add(question.text)
    return merged


class QuestionnaireService:
    """Builds the questionnaire for a concern and stores the answers."""

    def __init__(
        self,
        db: AsyncSession,
        questionnaire_client: QuestionnaireClient | None = None,
        system_prompt_client: SystemPromptClient | None = None,
    ) -> None:
        self.db = db
        self.questionnaire_client = questionnaire_client or QuestionnaireClient()
        self.system_prompt_client = system_prompt_client or SystemPromptClient()

    async def build(self, concern: str) -> QuestionnaireResponse:
        """
        Static questions plus five generated for the concern.

        If generation fails only the static questions are returned.
        """
        concern = concern.strip()
        if not concern:
            raise ValidationFailedError("相談内容が見つかりません。")

        questionnaire = Questionnaire()
        has_dynamic = False
        try:
            questionnaire.extend(await self.questionnaire_client.generate(concern))
            has_dynamic = True
        except AIServiceError as e:
            logger.warning("Dynamic questions unavailable", error=e.message)

        return QuestionnaireResponse(
            concern=concern,
            questions=questionnaire.questions,
            total_questions=len(questionnaire.questions),
            has_dynamic_questions=has_dynamic,
        )

    async def submit(
        self,
        consultation_id: str,
        request: QuestionnaireSubmitRequest,
        user: UserContext | None = None,
    ) -> QuestionnaireSubmitResponse:
        """
        Store the answers of a completed questionnaire.

        Raises:
            ValidationFailedError: If any question is unanswered
            NotFoundError: If the consultation does not exist
            UpstreamError: If the insert fails
        """
        concern = request.concern.strip()
        if not concern:
            raise ValidationFailedError("相談内容が見つかりません。")

        questionnaire = Questionnaire(merge_questions(request.questions))
        for answer in request.answers:
            questionnaire.record(answer.question, answer.answer)

        unanswered = questionnaire.unanswered()
        if unanswered:
            numbers = ", ".join(str(question.id) for question in unanswered)
            raise ValidationFailedError(f"以下の質問に回答してください: {numbers}番")

        try:
            columns = questionnaire.flatten()
        except ValueError as e:
            raise ValidationFailedError(str(e)) from None

        await self._ensure_consultation(consultation_id)

        sprompt = await self._system_prompt(concern)

        row = ConsultationData(
            consultation_id=consultation_id,
            concern=concern,
            sprompt=sprompt or NO_SYSTEM_PROMPT,
            uid=user.user_id if user else None,
            **columns,
        )
        try:
            self.db.add(row)
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error("Error saving questionnaire", consultation_id=consultation_id, error=str(e))
            raise UpstreamError("データの保存に失敗しました。") from None

        logger.info(
            "Questionnaire submitted",
            consultation_id=consultation_id,
            answer_count=len(questionnaire.answers),
            anonymous=user is None,
        )

        return QuestionnaireSubmitResponse(
            consultation_id=consultation_id,
            redirect_path=chat_path(consultation_id, concern),
        )

    async def _ensure_consultation(self, consultation_id: str) -> None:
        try:
            result = await self.db.execute(
                select(Consultation.id).where(Consultation.id == consultation_id)
            )
        except SQLAlchemyError as e:
            logger.error("Error loading consultation", consultation_id=consultation_id, error=str(e))
            raise UpstreamError("データの保存に失敗しました。") from None

        if result.scalar_one_or_none() is None:
            raise NotFoundError("相談が見つかりません。")

    async def _system_prompt(self, concern: str) -> str | None:
        if not self.system_prompt_client.is_available():
            return None
        try:
            return await self.system_prompt_client.generate(concern)
        except AIServiceError as e:
            logger.warning("System prompt unavailable", error=e.message)
            return None
