"""httpx-backed client for the wizard API.

Maps problem+json error responses back onto the error taxonomy so the
`WizardController` sees the same exceptions the server raised. The
underlying `httpx.Client` is supplied by the caller; it carries the base URL
and the session cookie.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple, Type, TypeVar

import httpx
from pydantic import BaseModel

from sow_wizard.logic.errors import (
    AuthError,
    NotFoundError,
    StoreError,
    SubmissionValidationError,
    WizardError,
)
from sow_wizard.models.profile import ProfileResponse
from sow_wizard.models.questions import Question, QuestionsListResponse
from sow_wizard.models.sessions import AnswerItem, SessionDetail, SessionsListResponse, SessionSummary

logger = logging.getLogger(__name__)

API_PREFIX = "/api"

ModelT = TypeVar("ModelT", bound=BaseModel)


def _problem_detail(resp: httpx.Response, fallback: str) -> str:
    try:
        body = resp.json()
    except ValueError:
        return fallback
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("error") or fallback)
    return fallback


def error_for_response(resp: httpx.Response) -> WizardError:
    status = resp.status_code
    if status == 401:
        return AuthError(_problem_detail(resp, "Unauthorized"))
    if status == 400:
        return SubmissionValidationError(_problem_detail(resp, "Invalid request"))
    if status == 404:
        return NotFoundError(_problem_detail(resp, "Not found"))
    return StoreError()


class WizardApiClient:
    def __init__(self, http_client: httpx.Client, prefix: str = API_PREFIX) -> None:
        self._http = http_client
        self._prefix = prefix.rstrip("/")

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:  # type: ignore[no-untyped-def]
        try:
            resp = self._http.request(method, f"{self._prefix}{path}", **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("wizard_api_transport_error method=%s path=%s", method, path, exc_info=True)
            raise StoreError() from exc
        if resp.status_code >= 400:
            logger.info("wizard_api_error method=%s path=%s status=%s", method, path, resp.status_code)
            raise error_for_response(resp)
        return resp

    def _decode(self, resp: httpx.Response, model: Type[ModelT]) -> ModelT:
        # JSONDecodeError and pydantic's ValidationError are both ValueErrors
        try:
            return model.model_validate(resp.json())
        except ValueError as exc:
            logger.warning("wizard_api_bad_body path=%s status=%s", resp.request.url.path, resp.status_code)
            raise StoreError() from exc

    def list_questions(self) -> List[Question]:
        resp = self._request("GET", "/questions")
        return self._decode(resp, QuestionsListResponse).questions

    def submit_session(self, answers: Sequence[AnswerItem]) -> SessionDetail:
        payload = {"answers": [a.model_dump() for a in answers]}
        resp = self._request("POST", "/sessions", json=payload)
        return self._decode(resp, SessionDetail)

    def list_sessions(self, limit: int | None = None, offset: int | None = None) -> Tuple[List[SessionSummary], int]:
        params = {}
        if limit is not None:
            params["limit"] = str(limit)
        if offset is not None:
            params["offset"] = str(offset)
        resp = self._request("GET", "/sessions", params=params)
        page = self._decode(resp, SessionsListResponse)
        return page.sessions, page.total

    def get_session(self, session_id: str) -> SessionDetail:
        resp = self._request("GET", f"/sessions/{session_id}")
        return self._decode(resp, SessionDetail)

    def get_profile(self) -> ProfileResponse:
        resp = self._request("GET", "/profile")
        return self._decode(resp, ProfileResponse)

    def mark_welcome_seen(self) -> ProfileResponse:
        resp = self._request("PATCH", "/profile", json={"has_seen_welcome": True})
        return self._decode(resp, ProfileResponse)


def complete_welcome(client: WizardApiClient) -> bool:
    """Mark the welcome screen seen; failures are logged and never block navigation."""
    try:
        client.mark_welcome_seen()
    except WizardError as exc:
        logger.warning("welcome_flag_update_failed error=%s", exc)
        return False
    return True

@dataclass(frozen=True)
class QuestionAnswerPair:
    question_order: int
    question_id: str
    question_text: str
    answer_text: str


def question_answer_pairs(session: SessionDetail, questions: Sequence[Question]) -> List[QuestionAnswerPair]:
    """Join a session's answers with catalog text, ordered by question_order.

    Answers whose question or option is no longer in the catalog are skipped
    with a warning; the stored fragments still cover them.
    """
    by_id = {q.id: q for q in questions}
    pairs: List[QuestionAnswerPair] = []
    for item in session.answers:
        question = by_id.get(item.question_id)
        if question is None:
            logger.warning("session_answer_question_missing session=%s question=%s", session.id, item.question_id)
            continue
        option = question.option_by_id(item.answer_id)
        if option is None:
            logger.warning(
                "session_answer_option_missing session=%s question=%s answer=%s",
                session.id,
                item.question_id,
                item.answer_id,
            )
            continue
        pairs.append(
            QuestionAnswerPair(
                question_order=question.question_order,
                question_id=question.id,
                question_text=question.question_text,
                answer_text=option.text,
            )
        )
    return sorted(pairs, key=lambda p: p.question_order)


__all__ = [
    "API_PREFIX",
    "QuestionAnswerPair",
    "WizardApiClient",
    "complete_welcome",
    "error_for_response",
    "question_answer_pairs",
]
