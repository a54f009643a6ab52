"""Functional tests for the session endpoints under /api/sessions.

Runs the app in-process via TestClient against a seeded per-test database and
checks status codes, problem+json bodies and response schemas.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from jsonschema import Draft202012Validator
from sqlalchemy import text as sql_text

from conftest import ALICE, BOB, answers_payload, first_option_answers, load_schema
from sow_wizard.db.base import get_engine
from sow_wizard.http.problem import PROBLEM_MEDIA_TYPE
from sow_wizard.logic import repository_sessions
from sow_wizard.logic.events import SESSION_CREATED, get_buffered_events
from sow_wizard.models.sessions import AnswerItem


def _session_count() -> int:
    with get_engine().connect() as conn:
        return int(conn.execute(sql_text("SELECT COUNT(*) FROM wizard_session")).scalar_one())


def _assert_problem(resp, status: int, detail: str | None = None) -> dict:
    assert resp.status_code == status, resp.text
    assert resp.headers["content-type"].startswith(PROBLEM_MEDIA_TYPE)
    body = resp.json()
    Draft202012Validator(load_schema("Problem.schema.json")).validate(body)
    assert body["status"] == status
    if detail is not None:
        assert body["detail"] == detail
    return body


# -----------------------------
# Scenario A: complete submission
# -----------------------------

def test_submitting_first_option_for_every_question_creates_a_session(client, catalog) -> None:
    answers = first_option_answers(catalog)

    resp = client.post("/api/sessions", json=answers_payload(answers))

    assert resp.status_code == 201, resp.text
    body = resp.json()
    Draft202012Validator(load_schema("SessionDetail.schema.json")).validate(body)
    assert body["user_id"] == ALICE
    assert body["created_at"] == body["completed_at"]
    assert body["generated_fragments"] == [q.options[0].sow_fragment for q in catalog]
    assert len(body["generated_fragments"]) == 5
    assert [e["type"] for e in get_buffered_events()] == [SESSION_CREATED]


def test_submission_order_does_not_change_fragment_order(client, catalog) -> None:
    answers = [AnswerItem(question_id=q.id, answer_id=q.options[1].id) for q in reversed(catalog)]

    resp = client.post("/api/sessions", json=answers_payload(answers))

    assert resp.status_code == 201, resp.text
    assert resp.json()["generated_fragments"] == [q.options[1].sow_fragment for q in catalog]


def test_resubmitting_the_same_answers_creates_a_distinct_session(client, catalog) -> None:
    payload = answers_payload(first_option_answers(catalog))

    first = client.post("/api/sessions", json=payload).json()
    second = client.post("/api/sessions", json=payload).json()

    assert first["id"] != second["id"]
    assert _session_count() == 2


# -----------------------------
# Scenarios B to D: semantic validation
# -----------------------------

def test_missing_answer_is_rejected_without_creating_a_session(client, catalog) -> None:
    answers = first_option_answers(catalog)[:4]

    resp = client.post("/api/sessions", json=answers_payload(answers))

    body = _assert_problem(resp, 400, "wrong answer count")
    assert body["code"] == "VALIDATION_FAILED"
    assert _session_count() == 0


def test_duplicate_question_is_rejected_naming_it(client, catalog) -> None:
    answers = first_option_answers(catalog)
    answers[1] = AnswerItem(question_id=catalog[0].id, answer_id=catalog[0].options[1].id)

    resp = client.post("/api/sessions", json=answers_payload(answers))

    _assert_problem(resp, 400, f"duplicate question_id: {catalog[0].id}")
    assert _session_count() == 0


def test_unknown_question_is_rejected_naming_it(client, catalog) -> None:
    answers = first_option_answers(catalog)
    answers[2] = AnswerItem(question_id="nonexistent", answer_id="a1")

    resp = client.post("/api/sessions", json=answers_payload(answers))

    _assert_problem(resp, 400, "invalid question_id: nonexistent")


def test_unknown_answer_is_rejected_naming_both_ids(client, catalog) -> None:
    answers = first_option_answers(catalog)
    answers[3] = AnswerItem(question_id=catalog[3].id, answer_id="not_an_option")

    resp = client.post("/api/sessions", json=answers_payload(answers))

    _assert_problem(resp, 400, f"invalid answer_id: not_an_option for question: {catalog[3].id}")


# -----------------------------
# Request body parsing
# -----------------------------

@pytest.mark.parametrize(
    "body, detail",
    [
        ({"answers": "nope"}, "answers must be an array"),
        ({}, "answers must be an array"),
        ([1, 2], "answers must be an array"),
        ({"answers": [{"question_id": "q1"}]}, "Invalid answer structure"),
        ({"answers": [{"question_id": "", "answer_id": "a1"}]}, "Invalid answer structure"),
        ({"answers": ["q1"]}, "Invalid answer structure"),
    ],
)
def test_malformed_submission_bodies_are_rejected(client, body, detail) -> None:
    resp = client.post("/api/sessions", json=body)

    _assert_problem(resp, 400, detail)


def test_non_json_body_is_rejected(client) -> None:
    resp = client.post("/api/sessions", content=b"{not json", headers={"Content-Type": "application/json"})

    _assert_problem(resp, 400, "Invalid request body")


# -----------------------------
# Listing and pagination (Scenario E)
# -----------------------------

def _insert_sessions(owner: str, count: int, catalog) -> list[str]:
    answers = first_option_answers(catalog)
    fragments = [q.options[0].sow_fragment for q in catalog]
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return [
        repository_sessions.create_session(owner, answers, fragments, now=base + timedelta(minutes=i)).id
        for i in range(count)
    ]


def test_list_returns_most_recent_first_with_defaults(client, catalog) -> None:
    ids = _insert_sessions(ALICE, 12, catalog)
    _insert_sessions(BOB, 3, catalog)

    resp = client.get("/api/sessions")

    assert resp.status_code == 200, resp.text
    body = resp.json()
    Draft202012Validator(load_schema("SessionsList.schema.json")).validate(body)
    assert body["total"] == 12
    assert body["limit"] == 10
    assert body["offset"] == 0
    assert [s["id"] for s in body["sessions"]] == list(reversed(ids))[:10]


def test_list_pages_with_limit_and_offset(client, catalog) -> None:
    ids = _insert_sessions(ALICE, 7, catalog)

    resp = client.get("/api/sessions", params={"limit": "3", "offset": "5"})

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["total"] == 7
    assert [s["id"] for s in body["sessions"]] == list(reversed(ids))[5:]


@pytest.mark.parametrize(
    "params, detail",
    [
        ({"limit": "100"}, "Invalid limit parameter"),
        ({"limit": "0"}, "Invalid limit parameter"),
        ({"limit": "abc"}, "Invalid limit parameter"),
        ({"limit": "51"}, "Invalid limit parameter"),
        ({"offset": "-1"}, "Invalid offset parameter"),
        ({"offset": "x"}, "Invalid offset parameter"),
    ],
)
def test_out_of_range_pagination_is_rejected_before_the_store(client, mocker, params, detail) -> None:
    spy = mocker.patch("sow_wizard.routes.sessions.list_sessions")

    resp = client.get("/api/sessions", params=params)

    _assert_problem(resp, 400, detail)
    spy.assert_not_called()


def test_limit_of_fifty_is_accepted(client, catalog) -> None:
    resp = client.get("/api/sessions", params={"limit": "50"})

    assert resp.status_code == 200
    assert resp.json()["limit"] == 50


def test_configured_max_limit_lowers_the_ceiling(client, monkeypatch) -> None:
    from sow_wizard.config import reset_config_cache

    monkeypatch.setenv("SESSIONS_MAX_LIMIT", "20")
    reset_config_cache()

    assert client.get("/api/sessions", params={"limit": "20"}).status_code == 200
    _assert_problem(client.get("/api/sessions", params={"limit": "21"}), 400, "Invalid limit parameter")


# -----------------------------
# Fetch one (Scenario F)
# -----------------------------

def test_get_session_returns_the_stored_record_identically(client, catalog) -> None:
    created = client.post("/api/sessions", json=answers_payload(first_option_answers(catalog))).json()

    first = client.get(f"/api/sessions/{created['id']}")
    second = client.get(f"/api/sessions/{created['id']}")

    assert first.status_code == 200
    assert first.json() == second.json() == created


def test_foreign_and_missing_sessions_are_indistinguishable(make_client, catalog) -> None:
    bob_session = _insert_sessions(BOB, 1, catalog)[0]
    alice = make_client(ALICE)

    foreign = alice.get(f"/api/sessions/{bob_session}")
    missing = alice.get(f"/api/sessions/{uuid.uuid4()}")

    assert _assert_problem(foreign, 404, "Session not found") == _assert_problem(missing, 404, "Session not found")


def test_malformed_session_id_is_rejected(client) -> None:
    _assert_problem(client.get("/api/sessions/not-a-uuid"), 400, "Invalid session ID format")


def test_fragments_text_joins_with_blank_lines(client, catalog) -> None:
    created = client.post("/api/sessions", json=answers_payload(first_option_answers(catalog))).json()

    resp = client.get(f"/api/sessions/{created['id']}/fragments")

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert resp.text == "\n\n".join(created["generated_fragments"])


def test_fragments_text_of_foreign_session_is_not_found(make_client, catalog) -> None:
    bob_session = _insert_sessions(BOB, 1, catalog)[0]

    _assert_problem(make_client(ALICE).get(f"/api/sessions/{bob_session}/fragments"), 404)


# -----------------------------
# Authentication and store failures
# -----------------------------

@pytest.mark.parametrize(
    "method, path",
    [
        ("GET", "/api/questions"),
        ("GET", "/api/sessions"),
        ("POST", "/api/sessions"),
        ("GET", "/api/sessions/not-a-uuid"),
        ("GET", "/api/profile"),
    ],
)
def test_anonymous_requests_are_unauthorized(anon_client, method, path) -> None:
    resp = anon_client.request(method, path)

    body = _assert_problem(resp, 401)
    assert body["code"] == "AUTH_REQUIRED"


def test_store_failure_during_insert_is_a_generic_500(client, catalog) -> None:
    with get_engine().begin() as conn:
        conn.execute(sql_text("DROP TABLE wizard_session"))

    resp = client.post("/api/sessions", json=answers_payload(first_option_answers(catalog)))

    body = _assert_problem(resp, 500, "Internal server error")
    assert body["code"] == "STORE_UNAVAILABLE"
    assert get_buffered_events() == []


def test_submission_rereads_the_catalog_each_time(client, catalog, mocker) -> None:
    spy = mocker.spy(repository_sessions, "create_session")
    reader = mocker.patch(
        "sow_wizard.logic.repository_questions.list_questions",
        return_value=catalog[:4],
    )

    resp = client.post("/api/sessions", json=answers_payload(first_option_answers(catalog)))

    _assert_problem(resp, 400, "wrong answer count")
    reader.assert_called_once_with()
    spy.assert_not_called()
