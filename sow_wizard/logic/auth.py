"""FastAPI dependencies resolving the signed-in user."""

from __future__ import annotations

import logging

from fastapi import Request

from sow_wizard.config import get_config
from sow_wizard.logic.errors import AuthError
from sow_wizard.logic.oauth import GoogleOAuthClient
from sow_wizard.logic.repository_auth import resolve_session_token

logger = logging.getLogger(__name__)

OAUTH_STATE_COOKIE = "sow_oauth_state"


def session_token_from_request(request: Request) -> str:
    return (request.cookies.get(get_config().auth.cookie_name) or "").strip()


def get_current_user_id(request: Request) -> str:
    """Return the user id behind the session cookie or raise AuthError (401)."""
    token = session_token_from_request(request)
    if not token:
        raise AuthError()
    user_id = resolve_session_token(token)
    if user_id is None:
        logger.info("auth_token_rejected path=%s", request.url.path)
        raise AuthError()
    return user_id


def get_oauth_client() -> GoogleOAuthClient:
    return GoogleOAuthClient(get_config().auth)


__all__ = [
    "OAUTH_STATE_COOKIE",
    "get_current_user_id",
    "get_oauth_client",
    "session_token_from_request",
]
