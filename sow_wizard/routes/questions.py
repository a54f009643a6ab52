"""Question catalog endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from sow_wizard.logic.auth import get_current_user_id
from sow_wizard.logic.repository_questions import list_questions
from sow_wizard.models.questions import QuestionsListResponse

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get(
    "/questions",
    summary="List wizard questions ordered by question_order",
    operation_id="listQuestions",
    response_model=QuestionsListResponse,
)
def get_questions(user_id: str = Depends(get_current_user_id)) -> QuestionsListResponse:
    questions = list_questions()
    return QuestionsListResponse(questions=questions, total=len(questions))


__all__ = ["router", "get_questions"]
