"""Google sign-in/out endpoints and session cookie issuance."""

from __future__ import annotations

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import RedirectResponse

from sow_wizard.config import get_config
from sow_wizard.http.problem import problem, problem_response
from sow_wizard.logic.auth import OAUTH_STATE_COOKIE, get_oauth_client, session_token_from_request
from sow_wizard.logic.errors import SubmissionValidationError
from sow_wizard.logic.events import USER_SIGNED_IN, USER_SIGNED_OUT, publish
from sow_wizard.logic.oauth import GoogleOAuthClient, OAuthNotConfiguredError, new_state_token
from sow_wizard.logic.repository_auth import issue_session_token, revoke_session_token
from sow_wizard.logic.repository_profiles import ensure_profile

router = APIRouter()
logger = logging.getLogger(__name__)

STATE_COOKIE_MAX_AGE = 600


def _oauth_not_configured() -> Response:
    logger.error("google_oauth_not_configured")
    return problem_response(
        problem(500, "Internal Server Error", "Google OAuth is not configured", "AUTH_NOT_CONFIGURED")
    )


@router.get("/auth/login", summary="Start Google sign-in", operation_id="login")
def login(oauth: GoogleOAuthClient = Depends(get_oauth_client)) -> Response:
    state = new_state_token()
    try:
        url = oauth.authorization_url(state)
    except OAuthNotConfiguredError:
        return _oauth_not_configured()
    resp = RedirectResponse(url=url, status_code=302)
    resp.set_cookie(
        OAUTH_STATE_COOKIE,
        state,
        max_age=STATE_COOKIE_MAX_AGE,
        httponly=True,
        samesite="lax",
        secure=get_config().auth.cookie_secure,
        path="/",
    )
    return resp


@router.get("/auth/callback", summary="Google OAuth redirect target", operation_id="oauthCallback")
def oauth_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    oauth: GoogleOAuthClient = Depends(get_oauth_client),
) -> Response:
    expected_state = request.cookies.get(OAUTH_STATE_COOKIE) or ""
    if not code or not state or not expected_state or not secrets.compare_digest(state, expected_state):
        raise SubmissionValidationError("Invalid OAuth callback")
    try:
        identity = oauth.exchange_code(code)
    except OAuthNotConfiguredError:
        return _oauth_not_configured()

    auth_cfg = get_config().auth
    ensure_profile(identity.user_id, identity.email)
    token = issue_session_token(identity.user_id, auth_cfg.session_ttl_seconds)
    publish(USER_SIGNED_IN, {"user_id": identity.user_id})

    resp = RedirectResponse(url=auth_cfg.post_login_redirect, status_code=303)
    resp.set_cookie(
        auth_cfg.cookie_name,
        token,
        max_age=auth_cfg.session_ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=auth_cfg.cookie_secure,
        path="/",
    )
    resp.delete_cookie(OAUTH_STATE_COOKIE, path="/")
    return resp


@router.post("/auth/logout", summary="Sign out and clear the session cookie", operation_id="logout")
def logout(request: Request) -> Response:
    token = session_token_from_request(request)
    if token and revoke_session_token(token):
        publish(USER_SIGNED_OUT, {})
    resp = Response(status_code=200)
    resp.delete_cookie(get_config().auth.cookie_name, path="/")
    return resp


__all__ = ["router", "login", "oauth_callback", "logout"]
