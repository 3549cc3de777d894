"""V1 API router."""

from fastapi import APIRouter

from healthle.api.v1.auth import router as auth_router
from healthle.api.v1.chat import router as chat_router
from healthle.api.v1.dashboard import router as dashboard_router
from healthle.api.v1.history import router as history_router
from healthle.api.v1.pages import router as pages_router
from healthle.api.v1.questionnaire import router as questionnaire_router
from healthle.api.v1.settings import router as settings_router
from healthle.api.v1.status import router as status_router

router = APIRouter()

# Status endpoint
router.include_router(status_router)

# Consultation flow
router.include_router(dashboard_router)
router.include_router(questionnaire_router)
router.include_router(chat_router)
router.include_router(history_router)

# Account and settings
router.include_router(auth_router)
router.include_router(settings_router)
router.include_router(pages_router)
