"""Client-side wizard state machine.

    AwaitingQuestions -> Ready(position, answers) -> Submitting -> Completed
                   |                                  |
                   +--------------> Failed <----------+

`WizardState` is an immutable value; the module-level transition functions
take a state and return a new one, so the machine can be exercised without
any I/O. `WizardController` owns one state plus the two effectful
collaborators (catalog fetch, submission) and serialises them: only one
load/advance/retry may be in flight at a time.

Navigation is forward-only. Selecting an answer replaces any earlier choice
for the current question; advancing requires the current question to be
answered, and advancing past the last question submits.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Callable, Iterator, List, Mapping, Optional, Sequence, Tuple

from sow_wizard.logic.errors import AuthError, StoreError, WizardBusyError, WizardError
from sow_wizard.models.questions import Question
from sow_wizard.models.sessions import AnswerItem, SessionDetail

logger = logging.getLogger(__name__)


class WizardPhase(str, Enum):
    AWAITING_QUESTIONS = "awaiting_questions"
    READY = "ready"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    FAILED = "failed"


def _frozen_answers(answers: Mapping[str, str] | None = None) -> Mapping[str, str]:
    return MappingProxyType(dict(answers or {}))


@dataclass(frozen=True)
class WizardState:
    phase: WizardPhase = WizardPhase.AWAITING_QUESTIONS
    questions: Tuple[Question, ...] = ()
    position: int = 0
    answers: Mapping[str, str] = field(default_factory=_frozen_answers)
    error: Optional[WizardError] = None
    # Phase that was running when the machine entered FAILED
    failed_during: Optional[WizardPhase] = None
    session: Optional[SessionDetail] = None

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> Optional[Question]:
        if 0 <= self.position < len(self.questions):
            return self.questions[self.position]
        return None

    @property
    def current_answer_id(self) -> Optional[str]:
        question = self.current_question
        if question is None:
            return None
        return self.answers.get(question.id)

    @property
    def is_last_question(self) -> bool:
        return self.total_questions > 0 and self.position == self.total_questions - 1

    @property
    def can_advance(self) -> bool:
        return self.current_answer_id is not None

    @property
    def is_loading(self) -> bool:
        return self.phase is WizardPhase.AWAITING_QUESTIONS

    @property
    def is_submitting(self) -> bool:
        return self.phase is WizardPhase.SUBMITTING

    @property
    def requires_login(self) -> bool:
        return isinstance(self.error, AuthError)

    def answer_items(self) -> List[AnswerItem]:
        """Accumulated answers as submission items, in the order they were first chosen."""
        return [AnswerItem(question_id=q, answer_id=a) for q, a in self.answers.items()]


# ---------------------------------------------------------------------------
# Pure transitions
# ---------------------------------------------------------------------------

def questions_loaded(state: WizardState, questions: Sequence[Question]) -> WizardState:
    ordered = tuple(sorted(questions, key=lambda q: q.question_order))
    return replace(
        state,
        phase=WizardPhase.READY,
        questions=ordered,
        position=0,
        answers=_frozen_answers(),
        error=None,
        failed_during=None,
    )


def catalog_failed(state: WizardState, error: WizardError) -> WizardState:
    return replace(state, phase=WizardPhase.FAILED, error=error, failed_during=WizardPhase.AWAITING_QUESTIONS)


def select_answer(state: WizardState, answer_id: str) -> WizardState:
    question = state.current_question
    if state.phase is not WizardPhase.READY or question is None:
        return state
    answers = dict(state.answers)
    answers[question.id] = answer_id
    return replace(state, answers=_frozen_answers(answers))


def next_question(state: WizardState) -> WizardState:
    """Move to the next question; a no-op unless answered and not on the last question."""
    if state.phase is not WizardPhase.READY or not state.can_advance or state.is_last_question:
        return state
    return replace(state, position=state.position + 1)


def begin_submission(state: WizardState) -> WizardState:
    return replace(state, phase=WizardPhase.SUBMITTING, error=None, failed_during=None)


def submission_succeeded(state: WizardState, session: SessionDetail) -> WizardState:
    return replace(state, phase=WizardPhase.COMPLETED, session=session, error=None)


def submission_failed(state: WizardState, error: WizardError) -> WizardState:
    # answers and position are kept so a retry resubmits without re-answering
    return replace(state, phase=WizardPhase.FAILED, error=error, failed_during=WizardPhase.SUBMITTING)


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

FetchQuestions = Callable[[], Sequence[Question]]
SubmitAnswers = Callable[[List[AnswerItem]], SessionDetail]


def _unexpected(exc: Exception) -> StoreError:
    # Non-domain failures still land in FAILED so retry stays possible
    error = StoreError()
    error.__cause__ = exc
    return error


class WizardController:
    def __init__(self, fetch_questions: FetchQuestions, submit_answers: SubmitAnswers) -> None:
        self._fetch_questions = fetch_questions
        self._submit_answers = submit_answers
        self._state = WizardState()
        self._in_flight = threading.Lock()

    @property
    def state(self) -> WizardState:
        return self._state

    @contextmanager
    def _single_flight(self) -> Iterator[None]:
        if not self._in_flight.acquire(blocking=False):
            raise WizardBusyError()
        try:
            yield
        finally:
            self._in_flight.release()

    def load(self) -> WizardState:
        with self._single_flight():
            return self._load()

    def select_answer(self, answer_id: str) -> WizardState:
        self._state = select_answer(self._state, answer_id)
        return self._state

    def advance(self) -> WizardState:
        with self._single_flight():
            state = self._state
            if state.phase is not WizardPhase.READY or not state.can_advance:
                return state
            if not state.is_last_question:
                self._state = next_question(state)
                return self._state
            return self._submit()

    def retry(self) -> WizardState:
        """Repeat whichever step failed: the catalog fetch or the submission.

        A failed submission is resent with the accumulated answers; the
        catalog is not refetched because the server validates against its
        current catalog anyway. Authentication failures are not retried.
        """
        with self._single_flight():
            state = self._state
            if state.phase is not WizardPhase.FAILED or state.requires_login:
                return state
            if state.failed_during is WizardPhase.AWAITING_QUESTIONS:
                return self._load()
            return self._submit()

    def _load(self) -> WizardState:
        self._state = replace(self._state, phase=WizardPhase.AWAITING_QUESTIONS, error=None, failed_during=None)
        try:
            questions = self._fetch_questions()
        except WizardError as exc:
            logger.warning("wizard_catalog_fetch_failed error=%s", exc)
            self._state = catalog_failed(self._state, exc)
            return self._state
        except Exception as exc:
            logger.error("wizard_catalog_fetch_crashed", exc_info=True)
            self._state = catalog_failed(self._state, _unexpected(exc))
            return self._state
        self._state = questions_loaded(self._state, questions)
        return self._state

    def _submit(self) -> WizardState:
        self._state = begin_submission(self._state)
        try:
            session = self._submit_answers(self._state.answer_items())
        except WizardError as exc:
            logger.warning("wizard_submission_failed error=%s", exc)
            self._state = submission_failed(self._state, exc)
            return self._state
        except Exception as exc:
            logger.error("wizard_submission_crashed", exc_info=True)
            self._state = submission_failed(self._state, _unexpected(exc))
            return self._state
        self._state = submission_succeeded(self._state, session)
        return self._state


__all__ = [
    "WizardController",
    "WizardPhase",
    "WizardState",
    "begin_submission",
    "catalog_failed",
    "next_question",
    "questions_loaded",
    "select_answer",
    "submission_failed",
    "submission_succeeded",
]
