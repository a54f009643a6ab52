"""Validation of a candidate submission against the question catalog.

Checks run in a fixed order and the first violation wins, so error text is
deterministic for a given input:

1. cardinality: exactly one answer per catalog question
2. uniqueness: no question_id appears twice
3. references, per item in input order: the question_id exists in the
   catalog, then the answer_id is one of that question's options
"""

from __future__ import annotations

from typing import Dict, Optional, Sequence

from sow_wizard.logic.errors import SubmissionValidationError
from sow_wizard.models.questions import Question
from sow_wizard.models.sessions import AnswerItem

WRONG_ANSWER_COUNT = "wrong answer count"


def find_duplicate_question_id(answers: Sequence[AnswerItem]) -> Optional[str]:
    """Return the first question_id seen twice, or None."""
    seen: set[str] = set()
    for answer in answers:
        if answer.question_id in seen:
            return answer.question_id
        seen.add(answer.question_id)
    return None


def catalog_by_id(catalog: Sequence[Question]) -> Dict[str, Question]:
    return {q.id: q for q in catalog}


def check_references(answers: Sequence[AnswerItem], catalog: Sequence[Question]) -> Optional[str]:
    """Return the reason for the first dangling reference, or None."""
    questions = catalog_by_id(catalog)
    for answer in answers:
        question = questions.get(answer.question_id)
        if question is None:
            return f"invalid question_id: {answer.question_id}"
        if question.option_by_id(answer.answer_id) is None:
            return f"invalid answer_id: {answer.answer_id} for question: {answer.question_id}"
    return None


def validate_submission(answers: Sequence[AnswerItem], catalog: Sequence[Question]) -> None:
    """Raise SubmissionValidationError on the first violated rule; return None when valid."""
    if len(answers) != len(catalog):
        raise SubmissionValidationError(WRONG_ANSWER_COUNT)

    duplicate = find_duplicate_question_id(answers)
    if duplicate is not None:
        raise SubmissionValidationError(f"duplicate question_id: {duplicate}")

    reason = check_references(answers, catalog)
    if reason is not None:
        raise SubmissionValidationError(reason)


__all__ = [
    "WRONG_ANSWER_COUNT",
    "catalog_by_id",
    "check_references",
    "find_duplicate_question_id",
    "validate_submission",
]
