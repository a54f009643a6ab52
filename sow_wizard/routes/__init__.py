"""APIRouter registration for the wizard service."""

from __future__ import annotations

from fastapi import APIRouter

from sow_wizard.routes.auth import router as auth_router
from sow_wizard.routes.profile import router as profile_router
from sow_wizard.routes.questions import router as questions_router
from sow_wizard.routes.sessions import router as sessions_router

api_router = APIRouter()
api_router.include_router(auth_router, tags=["Auth"])
api_router.include_router(questions_router, tags=["Questions"])
api_router.include_router(sessions_router, tags=["Sessions"])
api_router.include_router(profile_router, tags=["Profile"])

__all__ = ["api_router"]
