"""Profile endpoints: read and mark the welcome screen as seen."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as PydanticValidationError
from starlette.concurrency import run_in_threadpool

from sow_wizard.logic.auth import get_current_user_id
from sow_wizard.logic.errors import SubmissionValidationError
from sow_wizard.logic.events import WELCOME_SEEN, publish
from sow_wizard.logic.repository_profiles import get_profile as load_profile
from sow_wizard.logic.repository_profiles import set_welcome_seen
from sow_wizard.models.profile import ProfileResponse, UpdateProfileCommand

router = APIRouter()
logger = logging.getLogger(__name__)

INVALID_BODY = "Invalid request body"
INVALID_WELCOME_FLAG = "has_seen_welcome must be a boolean"


@router.get(
    "/profile",
    summary="Get the current user's profile",
    operation_id="getProfile",
    response_model=ProfileResponse,
)
def get_profile(user_id: str = Depends(get_current_user_id)) -> ProfileResponse:
    return load_profile(user_id)


@router.patch(
    "/profile",
    summary="Update has_seen_welcome on the current user's profile",
    operation_id="updateProfile",
    response_model=ProfileResponse,
)
async def update_profile(request: Request, user_id: str = Depends(get_current_user_id)) -> ProfileResponse:
    try:
        body = await request.json()
    except ValueError:
        raise SubmissionValidationError(INVALID_BODY) from None
    try:
        command = UpdateProfileCommand.model_validate(body)
    except PydanticValidationError:
        raise SubmissionValidationError(INVALID_WELCOME_FLAG) from None

    if not command.has_seen_welcome:
        # The flag is one-way; false is accepted but leaves the profile unchanged
        return await run_in_threadpool(load_profile, user_id)
    profile = await run_in_threadpool(set_welcome_seen, user_id)
    publish(WELCOME_SEEN, {"user_id": user_id})
    return profile


__all__ = ["router", "get_profile", "update_profile"]
