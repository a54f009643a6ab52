"""Pydantic models for wizard sessions (request bodies and responses)."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field

from sow_wizard.config import MAX_SESSIONS_LIMIT


class AnswerItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    question_id: str = Field(min_length=1)
    answer_id: str = Field(min_length=1)


class CreateSessionCommand(BaseModel):
    answers: List[AnswerItem]


class SessionSummary(BaseModel):
    id: str
    created_at: str
    completed_at: str


class SessionDetail(BaseModel):
    id: str
    user_id: str
    created_at: str
    completed_at: str
    answers: List[AnswerItem]
    generated_fragments: List[str]


class SessionsListResponse(BaseModel):
    sessions: List[SessionSummary]
    total: int
    limit: int
    offset: int


class SessionsQuery(BaseModel):
    """Query parameters of GET /api/sessions; strings are coerced to ints."""

    limit: int = Field(default=10, ge=1, le=MAX_SESSIONS_LIMIT)
    offset: int = Field(default=0, ge=0)


__all__ = [
    "AnswerItem",
    "CreateSessionCommand",
    "SessionDetail",
    "SessionsListResponse",
    "SessionsQuery",
    "SessionSummary",
]
