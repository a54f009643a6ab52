"""Pydantic request/response models for the wizard API."""

from sow_wizard.models.profile import ProfileResponse, UpdateProfileCommand
from sow_wizard.models.questions import AnswerOption, Question, QuestionsListResponse
from sow_wizard.models.sessions import (
    AnswerItem,
    CreateSessionCommand,
    SessionDetail,
    SessionsListResponse,
    SessionsQuery,
    SessionSummary,
)

__all__ = [
    "AnswerItem",
    "AnswerOption",
    "CreateSessionCommand",
    "ProfileResponse",
    "Question",
    "QuestionsListResponse",
    "SessionDetail",
    "SessionsListResponse",
    "SessionsQuery",
    "SessionSummary",
    "UpdateProfileCommand",
]
