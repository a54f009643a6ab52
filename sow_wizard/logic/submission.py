"""Session submission pipeline.

fetch catalog -> validate -> generate fragments -> persist -> return record.
The catalog is re-read on every call so answers collected against an older
catalog are rejected rather than silently accepted. Nothing is retried here;
a failed write leaves no session behind and the caller may resubmit, which
creates a new, distinct session.
"""

from __future__ import annotations

import logging
from typing import Sequence

from sow_wizard.logic import repository_questions, repository_sessions
from sow_wizard.logic.errors import SubmissionValidationError
from sow_wizard.logic.events import SESSION_CREATED, publish
from sow_wizard.logic.fragments import generate_fragments
from sow_wizard.logic.session_validation import validate_submission
from sow_wizard.models.sessions import AnswerItem, SessionDetail

logger = logging.getLogger(__name__)


def submit_session(owner: str, answers: Sequence[AnswerItem]) -> SessionDetail:
    """Validate `answers` for `owner` and persist them as a completed session.

    Raises SubmissionValidationError (reason unchanged) or StoreError.
    """
    catalog = repository_questions.list_questions()
    try:
        validate_submission(answers, catalog)
    except SubmissionValidationError as exc:
        logger.info("session_submission_rejected owner=%s reason=%s", owner, exc)
        raise
    fragments = generate_fragments(answers, catalog)
    session = repository_sessions.create_session(owner, answers, fragments)
    publish(SESSION_CREATED, {"session_id": session.id, "user_id": owner, "fragments": len(fragments)})
    return session


__all__ = ["submit_session"]
