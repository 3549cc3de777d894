"""Dashboard: concern categories, suggestions, examples and consultation start."""

import time
from urllib.parse import quote

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from healthle.core.errors import UpstreamError, ValidationFailedError
from healthle.core.logging import get_logger
from healthle.models import Consultation, ConsultationExample, HealthCategory, HealthConcern
from healthle.schemas.dashboard import Category, StartConsultationResponse

logger = get_logger(__name__)

DEFAULT_CATEGORY_NAME = "睡眠"
FREQUENT_CONCERN_LIMIT = 5

# Characters encodeURIComponent leaves alone besides alphanumerics and -_.~
_URI_COMPONENT_SAFE = "!'()*"


def encode_component(value: str) -> str:
    """Percent-encode a query value the way the browser client does."""
    return quote(value, safe=_URI_COMPONENT_SAFE)


def questionnaire_path(consultation_id: str, concern: str) -> str:
    """Path of the questionnaire page for a new consultation."""
    return f"/questionnaire?id={encode_component(consultation_id)}&concern={encode_component(concern)}"


def default_category(categories: list[Category]) -> int | None:
    """Pick 睡眠 when available, otherwise the first category."""
    for category in categories:
        if category.name == DEFAULT_CATEGORY_NAME:
            return category.id
    return categories[0].id if categories else None


def filter_concerns(concerns: list[str], term: str) -> list[str]:
    """Case-insensitive substring match; an empty term matches nothing."""
    if not term:
        return []
    needle = term.lower()
    return [concern for concern in concerns if needle in concern.lower()]


def rotating_example(examples: list[str], now: float, interval_seconds: int) -> str | None:
    """The example to display at `now` when rotating every `interval_seconds`."""
    if not examples:
        return None
    if interval_seconds <= 0:
        return examples[0]
    return examples[int(now // interval_seconds) % len(examples)]


class DashboardService:
    """Reads curated concern data and creates consultations."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_categories(self) -> list[Category]:
        """All health categories."""
        try:
            result = await self.db.execute(
                select(HealthCategory.id, HealthCategory.name).order_by(HealthCategory.id)
            )
        except SQLAlchemyError as e:
            logger.error("Error fetching categories", error=str(e))
            raise UpstreamError("ジャンルの取得に失敗しました。") from None

        return [Category(id=row.id, name=row.name) for row in result.all()]

    async def frequent_concerns(
        self,
        category_id: int,
        limit: int = FREQUENT_CONCERN_LIMIT,
    ) -> list[str]:
        """Frequently consulted concerns of a category."""
        try:
            result = await self.db.execute(
                select(HealthConcern.description)
                .where(HealthConcern.category_id == category_id)
                .order_by(HealthConcern.id)
                .limit(limit)
            )
        except SQLAlchemyError as e:
            logger.error("Error fetching frequent concerns", category_id=category_id, error=str(e))
            raise UpstreamError("よく相談される内容の取得に失敗しました。") from None

        return list(result.scalars().all())

    async def all_concerns(self) -> list[str]:
        """Every concern description, used for typeahead suggestions."""
        try:
            result = await self.db.execute(select(HealthConcern.description))
        except SQLAlchemyError as e:
            logger.error("Error fetching all concerns", error=str(e))
            raise UpstreamError("全ての悩みの取得に失敗しました。") from None

        return list(result.scalars().all())

    async def suggest(self, term: str) -> list[str]:
        """Concerns containing what the user typed."""
        if not term:
            return []
        return filter_concerns(await self.all_concerns(), term)

    async def list_examples(self) -> list[str]:
        """Example concern texts in display order."""
        try:
            result = await self.db.execute(
                select(ConsultationExample.text).order_by(ConsultationExample.id)
            )
        except SQLAlchemyError as e:
            logger.error("Error fetching consultation examples", error=str(e))
            raise UpstreamError("相談例の取得に失敗しました。") from None

        return list(result.scalars().all())

    async def current_example(self, interval_seconds: int, now: float | None = None) -> tuple[list[str], str | None]:
        """All examples plus the one to display now."""
        examples = await self.list_examples()
        return examples, rotating_example(
            examples, time.time() if now is None else now, interval_seconds
        )

    async def start_consultation(self, concern: str) -> StartConsultationResponse:
        """
        Create a consultation for a concern.

        Raises:
            ValidationFailedError: If the concern is blank
            UpstreamError: If the insert fails
        """
        concern = concern.strip()
        if not concern:
            raise ValidationFailedError("相談内容を入力してください。")

        consultation = Consultation(concern=concern)
        try:
            self.db.add(consultation)
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error("Error starting consultation", error=str(e))
            raise UpstreamError("相談の開始に失敗しました。もう一度お試しください。") from None

        if not consultation.id:
            raise UpstreamError("相談の開始に失敗しました。もう一度お試しください。")

        logger.info("Consultation started", consultation_id=str(consultation.id))

        return StartConsultationResponse(
            consultation_id=str(consultation.id),
            concern=concern,
            redirect_path=questionnaire_path(str(consultation.id), concern),
        )
