"""Functional tests for /api/profile and the Google sign-in flow.

Google's token and userinfo endpoints are replaced by an httpx.MockTransport
injected through FastAPI's dependency overrides.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from jsonschema import Draft202012Validator

from conftest import ALICE, COOKIE_NAME, load_schema
from sow_wizard.config import AuthConfig, get_config
from sow_wizard.logic import oauth as oauth_module
from sow_wizard.logic.auth import OAUTH_STATE_COOKIE, get_oauth_client
from sow_wizard.logic.errors import AuthError
from sow_wizard.logic.events import (
    USER_SIGNED_IN,
    USER_SIGNED_OUT,
    WELCOME_SEEN,
    get_buffered_events,
)
from sow_wizard.logic.oauth import (
    GOOGLE_AUTHORIZE_URL,
    GOOGLE_TOKEN_URL,
    GOOGLE_USERINFO_URL,
    GoogleOAuthClient,
)
from sow_wizard.logic.repository_auth import (
    issue_session_token,
    resolve_session_token,
    revoke_session_token,
)
from sow_wizard.logic.repository_profiles import get_profile


# -----------------------------
# Profile
# -----------------------------

def test_new_profile_has_not_seen_welcome(client) -> None:
    resp = client.get("/api/profile")

    assert resp.status_code == 200, resp.text
    body = resp.json()
    Draft202012Validator(load_schema("Profile.schema.json")).validate(body)
    assert body["id"] == ALICE
    assert body["has_seen_welcome"] is False


def test_marking_welcome_seen_sets_the_flag(client) -> None:
    resp = client.patch("/api/profile", json={"has_seen_welcome": True})

    assert resp.status_code == 200, resp.text
    assert resp.json()["has_seen_welcome"] is True
    assert client.get("/api/profile").json()["has_seen_welcome"] is True
    assert [e["type"] for e in get_buffered_events()] == [WELCOME_SEEN]


def test_false_never_clears_the_flag(client) -> None:
    client.patch("/api/profile", json={"has_seen_welcome": True})

    resp = client.patch("/api/profile", json={"has_seen_welcome": False})

    assert resp.status_code == 200
    assert resp.json()["has_seen_welcome"] is True


@pytest.mark.parametrize(
    "body",
    [
        {"has_seen_welcome": "true"},
        {"has_seen_welcome": 1},
        {},
        {"has_seen_welcome": True, "extra": 1},
        ["has_seen_welcome"],
    ],
)
def test_profile_update_requires_exactly_a_boolean(client, body) -> None:
    resp = client.patch("/api/profile", json=body)

    assert resp.status_code == 400
    assert resp.json()["detail"] == "has_seen_welcome must be a boolean"


def test_profile_update_rejects_non_json(client) -> None:
    resp = client.patch("/api/profile", content=b"nope", headers={"Content-Type": "application/json"})

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid request body"


def test_signed_in_user_without_profile_gets_not_found(app) -> None:
    from fastapi.testclient import TestClient

    token = issue_session_token("google:ghost", 3600)
    ghost = TestClient(app, cookies={COOKIE_NAME: token})

    assert ghost.get("/api/profile").status_code == 404
    resp = ghost.patch("/api/profile", json={"has_seen_welcome": True})
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Profile not found"


# -----------------------------
# Session tokens
# -----------------------------

def test_expired_and_revoked_tokens_do_not_resolve(catalog) -> None:
    issued_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
    token = issue_session_token(ALICE, 60, now=issued_at)

    assert resolve_session_token(token, now=issued_at + timedelta(seconds=30)) == ALICE
    assert resolve_session_token(token, now=issued_at + timedelta(seconds=61)) is None

    live = issue_session_token(ALICE, 3600)
    assert revoke_session_token(live) is True
    assert revoke_session_token(live) is False
    assert resolve_session_token(live) is None
    assert resolve_session_token("") is None


def test_unknown_cookie_is_unauthorized(app) -> None:
    from fastapi.testclient import TestClient

    stranger = TestClient(app, cookies={COOKIE_NAME: "forged-token"})

    assert stranger.get("/api/questions").status_code == 401


# -----------------------------
# Google OAuth flow
# -----------------------------

def _google_transport(*, token_status: int = 200, subject: str = "1234567890") -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        url = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        if url == GOOGLE_TOKEN_URL:
            form = parse_qs(request.content.decode())
            assert form["grant_type"] == ["authorization_code"]
            assert form["code"] == ["auth-code-1"]
            if token_status != 200:
                return httpx.Response(token_status, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": "access-1", "token_type": "Bearer"})
        if url == GOOGLE_USERINFO_URL:
            assert request.headers["Authorization"] == "Bearer access-1"
            return httpx.Response(200, json={"sub": subject, "email": "carol@example.com", "name": "Carol"})
        return httpx.Response(404)

    return httpx.MockTransport(handler)


def _configured() -> AuthConfig:
    return AuthConfig(google_client_id="id", google_client_secret="secret")


@pytest.mark.parametrize("token_status", [200, 400])
def test_exchange_code_closes_the_client_it_creates(monkeypatch, token_status) -> None:
    owned = httpx.Client(transport=_google_transport(token_status=token_status))
    monkeypatch.setattr(oauth_module, "_default_http_client", lambda: owned)
    oauth = GoogleOAuthClient(_configured())

    if token_status == 200:
        assert oauth.exchange_code("auth-code-1").user_id == "google:1234567890"
    else:
        with pytest.raises(AuthError):
            oauth.exchange_code("auth-code-1")

    assert owned.is_closed


def test_exchange_code_leaves_an_injected_client_open() -> None:
    injected = httpx.Client(transport=_google_transport())
    oauth = GoogleOAuthClient(_configured(), http_client=injected)

    oauth.exchange_code("auth-code-1")
    oauth.exchange_code("auth-code-1")

    assert not injected.is_closed
    injected.close()


@pytest.mark.parametrize(
    "token_body, userinfo_body",
    [
        (["access-1"], {"sub": "1"}),
        ("access-1", {"sub": "1"}),
        ({"access_token": "access-1"}, ["1"]),
        ({"access_token": "access-1"}, 42),
    ],
)
def test_non_object_google_bodies_are_an_auth_error(token_body, userinfo_body) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/token"):
            return httpx.Response(200, json=token_body)
        return httpx.Response(200, json=userinfo_body)

    oauth = GoogleOAuthClient(_configured(), http_client=httpx.Client(transport=httpx.MockTransport(handler)))

    with pytest.raises(AuthError):
        oauth.exchange_code("auth-code-1")


@pytest.fixture
def google(app):
    def _install(**kwargs) -> None:
        transport = _google_transport(**kwargs)
        app.dependency_overrides[get_oauth_client] = lambda: GoogleOAuthClient(
            get_config().auth, http_client=httpx.Client(transport=transport)
        )

    yield _install
    app.dependency_overrides.clear()


def test_login_redirects_to_google_with_state_cookie(anon_client) -> None:
    resp = anon_client.get("/api/auth/login", follow_redirects=False)

    assert resp.status_code == 302
    location = resp.headers["location"]
    assert location.startswith(GOOGLE_AUTHORIZE_URL)
    query = parse_qs(urlparse(location).query)
    assert query["client_id"] == ["test-client-id"]
    assert query["scope"] == ["openid email profile"]
    assert query["state"] == [resp.cookies[OAUTH_STATE_COOKIE]]


def test_login_without_client_configuration_is_a_500(anon_client, monkeypatch) -> None:
    from sow_wizard.config import reset_config_cache

    monkeypatch.delenv("GOOGLE_CLIENT_ID")
    monkeypatch.delenv("GOOGLE_CLIENT_SECRET")
    reset_config_cache()

    resp = anon_client.get("/api/auth/login", follow_redirects=False)

    assert resp.status_code == 500
    assert resp.json()["code"] == "AUTH_NOT_CONFIGURED"


def test_callback_signs_the_user_in(anon_client, google) -> None:
    google()
    state = anon_client.get("/api/auth/login", follow_redirects=False).cookies[OAUTH_STATE_COOKIE]

    resp = anon_client.get(
        "/api/auth/callback",
        params={"code": "auth-code-1", "state": state},
        follow_redirects=False,
    )

    assert resp.status_code == 303, resp.text
    assert resp.headers["location"] == "/"
    assert COOKIE_NAME in resp.cookies
    assert resolve_session_token(resp.cookies[COOKIE_NAME]) == "google:1234567890"
    assert get_profile("google:1234567890").has_seen_welcome is False
    assert USER_SIGNED_IN in [e["type"] for e in get_buffered_events()]
    assert anon_client.get("/api/profile").status_code == 200


def test_callback_with_mismatched_state_is_rejected(anon_client, google) -> None:
    google()
    anon_client.get("/api/auth/login", follow_redirects=False)

    resp = anon_client.get(
        "/api/auth/callback",
        params={"code": "auth-code-1", "state": "forged"},
        follow_redirects=False,
    )

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid OAuth callback"


def test_callback_with_failed_code_exchange_is_unauthorized(anon_client, google) -> None:
    google(token_status=400)
    state = anon_client.get("/api/auth/login", follow_redirects=False).cookies[OAUTH_STATE_COOKIE]

    resp = anon_client.get(
        "/api/auth/callback",
        params={"code": "auth-code-1", "state": state},
        follow_redirects=False,
    )

    assert resp.status_code == 401
    assert COOKIE_NAME not in resp.cookies


def test_logout_revokes_the_session(make_client, app) -> None:
    from fastapi.testclient import TestClient

    alice = make_client(ALICE)
    token = alice.cookies[COOKIE_NAME]

    resp = alice.post("/api/auth/logout")

    assert resp.status_code == 200
    assert resp.content == b""
    assert resolve_session_token(token) is None
    assert USER_SIGNED_OUT in [e["type"] for e in get_buffered_events()]
    assert TestClient(app, cookies={COOKIE_NAME: token}).get("/api/profile").status_code == 401


def test_logout_without_a_session_still_succeeds(anon_client) -> None:
    assert anon_client.post("/api/auth/logout").status_code == 200
