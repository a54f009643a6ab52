"""Session endpoints: list, submit, fetch one, and copy-all text."""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.concurrency import run_in_threadpool

from sow_wizard.config import get_config
from sow_wizard.logic.auth import get_current_user_id
from sow_wizard.logic.errors import SubmissionValidationError
from sow_wizard.logic.fragments import join_fragments
from sow_wizard.logic.pagination import parse_pagination
from sow_wizard.logic.repository_sessions import get_session_by_id, list_sessions
from sow_wizard.logic.submission import submit_session
from sow_wizard.models.sessions import CreateSessionCommand, SessionDetail, SessionsListResponse

router = APIRouter()
logger = logging.getLogger(__name__)

INVALID_BODY = "Invalid request body"
ANSWERS_NOT_ARRAY = "answers must be an array"
INVALID_ANSWER_STRUCTURE = "Invalid answer structure"
INVALID_SESSION_ID = "Invalid session ID format"


def _parse_session_id(raw: str) -> str:
    try:
        return str(uuid.UUID(str(raw).strip()))
    except ValueError:
        raise SubmissionValidationError(INVALID_SESSION_ID) from None


def _parse_create_command(body: object) -> CreateSessionCommand:
    if not isinstance(body, dict) or not isinstance(body.get("answers"), list):
        raise SubmissionValidationError(ANSWERS_NOT_ARRAY)
    try:
        return CreateSessionCommand.model_validate(body)
    except PydanticValidationError:
        raise SubmissionValidationError(INVALID_ANSWER_STRUCTURE) from None


@router.get(
    "/sessions",
    summary="List the current user's completed sessions, most recent first",
    operation_id="listSessions",
    response_model=SessionsListResponse,
)
def get_sessions(
    limit: Optional[str] = None,
    offset: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
) -> SessionsListResponse:
    pagination = get_config().pagination
    page_limit, page_offset = parse_pagination(
        limit,
        offset,
        default_limit=pagination.default_limit,
        max_limit=pagination.max_limit,
    )
    sessions, total = list_sessions(user_id, page_limit, page_offset)
    return SessionsListResponse(sessions=sessions, total=total, limit=page_limit, offset=page_offset)


@router.post(
    "/sessions",
    summary="Submit a complete answer set and create a session",
    operation_id="createSession",
    status_code=201,
    response_model=SessionDetail,
)
async def create_session(request: Request, user_id: str = Depends(get_current_user_id)):
    try:
        body = await request.json()
    except ValueError:
        raise SubmissionValidationError(INVALID_BODY) from None
    command = _parse_create_command(body)
    session = await run_in_threadpool(submit_session, user_id, command.answers)
    logger.info("session_created id=%s user=%s", session.id, user_id)
    return JSONResponse(session.model_dump(), status_code=201)


@router.get(
    "/sessions/{session_id}",
    summary="Fetch one of the current user's sessions",
    operation_id="getSession",
    response_model=SessionDetail,
)
def get_session(session_id: str, user_id: str = Depends(get_current_user_id)) -> SessionDetail:
    return get_session_by_id(_parse_session_id(session_id), user_id)


@router.get(
    "/sessions/{session_id}/fragments",
    summary="Copy-all text of a session's fragments",
    operation_id="getSessionFragmentsText",
    response_class=PlainTextResponse,
)
def get_session_fragments_text(session_id: str, user_id: str = Depends(get_current_user_id)) -> PlainTextResponse:
    session = get_session_by_id(_parse_session_id(session_id), user_id)
    return PlainTextResponse(join_fragments(session.generated_fragments))


__all__ = ["router", "get_sessions", "create_session", "get_session", "get_session_fragments_text"]
