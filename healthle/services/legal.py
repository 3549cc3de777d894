"""Legal documents and the health disclaimer."""

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from healthle.core.errors import NotFoundError, UpstreamError
from healthle.core.logging import get_logger
from healthle.models import LegalDocument
from healthle.schemas.settings import LegalDocumentResponse, LegalDocumentType

logger = get_logger(__name__)

LEGAL_TITLES: dict[str, str] = {
    "privacy_policy": "プライバシーポリシー",
    "terms_of_service": "利用規約",
}

DISCLAIMER = (
    "本サービスは、ヘルスケアに関する情報提供を行うものであり、"
    "医師や専門家が特定の疾病や病気、障害を診断・治療・予防・医療アドバイスをする医療行為ではありません。"
)


class LegalDocumentService:
    """Reads privacy policy and terms of service."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, document_type: LegalDocumentType) -> LegalDocumentResponse:
        """
        Load a legal document by type.

        Raises:
            NotFoundError: If the document has not been published
        """
        try:
            result = await self.db.execute(
                select(LegalDocument.content).where(LegalDocument.type == document_type)
            )
        except SQLAlchemyError as e:
            logger.error("Error fetching legal document", document_type=document_type, error=str(e))
            raise UpstreamError("文書の取得に失敗しました。") from None

        content = result.scalar_one_or_none()
        if content is None:
            raise NotFoundError("文書が見つかりません。")

        return LegalDocumentResponse(
            type=document_type,
            title=LEGAL_TITLES[document_type],
            content=content,
        )
