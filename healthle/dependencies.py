"""FastAPI dependency injection utilities."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from healthle.config import Settings, get_settings
from healthle.core.auth import UserContext, get_current_user, get_optional_user
from healthle.core.database import get_db
from healthle.core.redis import get_redis
from healthle.services.accounts import AccountService
from healthle.services.ai import SuggestionDebouncer
from healthle.services.chat import ChatService, SurveyService
from healthle.services.dashboard import DashboardService
from healthle.services.history import HistoryService
from healthle.services.legal import LegalDocumentService
from healthle.services.questionnaire import QuestionnaireService

DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_account_service() -> AccountService:
    return AccountService()


def get_dashboard_service(db: DbSession) -> DashboardService:
    return DashboardService(db)


def get_questionnaire_service(db: DbSession) -> QuestionnaireService:
    return QuestionnaireService(db)


async def get_chat_service() -> ChatService:
    """
    Chat service for one stream.

    Streams open their own database sessions, so no request session is
    injected here.
    """
    settings = get_settings()
    debouncer = SuggestionDebouncer(await get_redis(), settings.suggestion_debounce_ms)
    return ChatService(debouncer=debouncer)


def get_survey_service(
    db: DbSession,
    accounts: Annotated[AccountService, Depends(get_account_service)],
) -> SurveyService:
    return SurveyService(db, accounts)


def get_history_service(db: DbSession) -> HistoryService:
    return HistoryService(db)


def get_legal_service(db: DbSession) -> LegalDocumentService:
    return LegalDocumentService(db)


# Type aliases for cleaner dependency injection
SettingsDep = Annotated[Settings, Depends(get_settings)]
CurrentUser = Annotated[UserContext, Depends(get_current_user)]
OptionalUser = Annotated[UserContext | None, Depends(get_optional_user)]
AccountServiceDep = Annotated[AccountService, Depends(get_account_service)]
DashboardServiceDep = Annotated[DashboardService, Depends(get_dashboard_service)]
QuestionnaireServiceDep = Annotated[QuestionnaireService, Depends(get_questionnaire_service)]
ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
SurveyServiceDep = Annotated[SurveyService, Depends(get_survey_service)]
HistoryServiceDep = Annotated[HistoryService, Depends(get_history_service)]
LegalServiceDep = Annotated[LegalDocumentService, Depends(get_legal_service)]
