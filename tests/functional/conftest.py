from __future__ import annotations

"""Functional test bootstrap.

Every test gets its own file-backed SQLite database under pytest's tmp_path,
with the packaged migrations applied and the default catalog seeded. The app
is created per test through `create_app()` and exercised with TestClient.
Startup auto-migrations are disabled; migrations are applied explicitly here.
"""

import json
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from sow_wizard.config import reset_config_cache
from sow_wizard.db.base import dispose_engine, get_engine
from sow_wizard.db.migrations_runner import apply_migrations
from sow_wizard.db.seed import seed_catalog
from sow_wizard.logic.events import get_buffered_events
from sow_wizard.logic.repository_auth import issue_session_token
from sow_wizard.logic.repository_profiles import ensure_profile
from sow_wizard.logic.repository_questions import list_questions
from sow_wizard.main import create_app
from sow_wizard.models.questions import Question
from sow_wizard.models.sessions import AnswerItem

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SCHEMAS_DIR = PROJECT_ROOT / "docs" / "schemas"

ALICE = "google:alice"
BOB = "google:bob"
COOKIE_NAME = "sow_session"


@pytest.fixture
def db_url(tmp_path, monkeypatch) -> str:
    url = f"sqlite:///{tmp_path / 'wizard.db'}"
    monkeypatch.setenv("TEST_DATABASE_URL", url)
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.setenv("AUTO_APPLY_MIGRATIONS", "0")
    monkeypatch.setenv("GOOGLE_CLIENT_ID", "test-client-id")
    monkeypatch.setenv("GOOGLE_CLIENT_SECRET", "test-client-secret")
    monkeypatch.setenv("OAUTH_REDIRECT_URL", "http://testserver/api/auth/callback")
    monkeypatch.delenv("AUTH_COOKIE_SECURE", raising=False)
    monkeypatch.delenv("SESSIONS_MAX_LIMIT", raising=False)
    monkeypatch.delenv("SESSIONS_DEFAULT_LIMIT", raising=False)
    reset_config_cache()
    apply_migrations(get_engine(url))
    get_buffered_events(clear=True)
    yield url
    dispose_engine()
    reset_config_cache()


@pytest.fixture
def catalog(db_url) -> List[Question]:
    """The packaged five-question catalog, as stored."""
    seed_catalog()
    return list_questions()


@pytest.fixture
def app(catalog):
    return create_app()


@pytest.fixture
def make_client(app) -> Callable[..., TestClient]:
    """Return a factory for TestClients, optionally signed in as `user_id`."""

    def _make(user_id: Optional[str] = None, *, raise_server_exceptions: bool = True) -> TestClient:
        cookies: Dict[str, str] = {}
        if user_id is not None:
            ensure_profile(user_id, f"{user_id.split(':')[-1]}@example.com")
            cookies[COOKIE_NAME] = issue_session_token(user_id, 3600)
        return TestClient(app, cookies=cookies, raise_server_exceptions=raise_server_exceptions)

    return _make


@pytest.fixture
def client(make_client) -> TestClient:
    """A client signed in as Alice."""
    return make_client(ALICE)


@pytest.fixture
def anon_client(make_client) -> TestClient:
    return make_client()


def first_option_answers(questions: List[Question]) -> List[AnswerItem]:
    return [AnswerItem(question_id=q.id, answer_id=q.options[0].id) for q in questions]


def answers_payload(answers: List[AnswerItem]) -> dict:
    return {"answers": [a.model_dump() for a in answers]}


def load_schema(name: str) -> dict:
    return json.loads((SCHEMAS_DIR / name).read_text(encoding="utf-8"))
