"""Google OAuth 2.0 authorization-code flow.

Builds the consent redirect and exchanges the returned code for the user's
identity using httpx. The HTTP client is injectable so tests can substitute
an `httpx.MockTransport`.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from sow_wizard.config import AuthConfig
from sow_wizard.logic.errors import AuthError

logger = logging.getLogger(__name__)

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
OAUTH_SCOPES = "openid email profile"
HTTP_TIMEOUT_SECONDS = 10.0


class OAuthNotConfiguredError(RuntimeError):
    """Google client id/secret are missing from configuration."""


@dataclass(frozen=True)
class GoogleIdentity:
    subject: str
    email: Optional[str] = None
    name: Optional[str] = None

    @property
    def user_id(self) -> str:
        return f"google:{self.subject}"


def new_state_token() -> str:
    return secrets.token_urlsafe(24)


def _default_http_client() -> httpx.Client:
    return httpx.Client(timeout=HTTP_TIMEOUT_SECONDS)


def _json_object(resp: httpx.Response) -> Dict[str, Any]:
    body = resp.json()
    if not isinstance(body, dict):
        raise AuthError("Google returned an unexpected response")
    return body


class GoogleOAuthClient:
    def __init__(self, config: AuthConfig, http_client: httpx.Client | None = None) -> None:
        self.config = config
        self._http = http_client

    def _require_configured(self) -> None:
        if not self.config.oauth_configured:
            raise OAuthNotConfiguredError("Google OAuth is not configured")

    def authorization_url(self, state: str) -> str:
        self._require_configured()
        params = {
            "client_id": self.config.google_client_id,
            "redirect_uri": self.config.redirect_url,
            "response_type": "code",
            "scope": OAUTH_SCOPES,
            "state": state,
            "access_type": "offline",
            "prompt": "consent",
        }
        return f"{GOOGLE_AUTHORIZE_URL}?{urlencode(params)}"

    def exchange_code(self, code: str) -> GoogleIdentity:
        """Trade an authorization code for the signed-in user's identity.

        Any transport failure or non-2xx answer from Google raises AuthError.
        A client created here is closed before returning; an injected one is
        left open for its owner.
        """
        self._require_configured()
        if self._http is not None:
            return self._exchange(self._http, code)
        with _default_http_client() as client:
            return self._exchange(client, code)

    def _exchange(self, client: httpx.Client, code: str) -> GoogleIdentity:
        try:
            token_resp = client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": self.config.google_client_id,
                    "client_secret": self.config.google_client_secret,
                    "redirect_uri": self.config.redirect_url,
                    "grant_type": "authorization_code",
                },
            )
            token_resp.raise_for_status()
            access_token = _json_object(token_resp).get("access_token")
            if not access_token:
                raise AuthError("Google token response carried no access_token")
            info_resp = client.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            info_resp.raise_for_status()
            info = _json_object(info_resp)
        except httpx.HTTPError as exc:
            logger.error("google_oauth_exchange_failed", exc_info=True)
            raise AuthError("Google sign-in failed") from exc
        except ValueError as exc:
            logger.error("google_oauth_response_not_json", exc_info=True)
            raise AuthError("Google sign-in failed") from exc

        subject = info.get("sub")
        if not subject:
            raise AuthError("Google userinfo carried no subject")
        return GoogleIdentity(subject=str(subject), email=info.get("email"), name=info.get("name"))


__all__ = [
    "GOOGLE_AUTHORIZE_URL",
    "GOOGLE_TOKEN_URL",
    "GOOGLE_USERINFO_URL",
    "GoogleIdentity",
    "GoogleOAuthClient",
    "OAuthNotConfiguredError",
    "new_state_token",
]
