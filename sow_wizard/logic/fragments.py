"""Fragment generation: map validated answers to document text.

Output order follows the catalog's `question_order`, never the order in which
answers were submitted.
"""

from __future__ import annotations

from typing import List, Sequence

from sow_wizard.logic.session_validation import catalog_by_id
from sow_wizard.models.questions import Question
from sow_wizard.models.sessions import AnswerItem

# Separator used by the "copy all" action
FRAGMENT_SEPARATOR = "\n\n"


class FragmentInvariantError(RuntimeError):
    """An answer that passed validation does not resolve in the catalog."""


def generate_fragments(answers: Sequence[AnswerItem], catalog: Sequence[Question]) -> List[str]:
    questions = catalog_by_id(catalog)
    try:
        ordered = sorted(answers, key=lambda a: questions[a.question_id].question_order)
    except KeyError as exc:
        raise FragmentInvariantError(f"unknown question_id after validation: {exc.args[0]}") from exc

    fragments: List[str] = []
    for answer in ordered:
        option = questions[answer.question_id].option_by_id(answer.answer_id)
        if option is None:
            raise FragmentInvariantError(
                f"unknown answer_id after validation: {answer.answer_id} for question: {answer.question_id}"
            )
        fragments.append(option.sow_fragment)
    return fragments


def join_fragments(fragments: Sequence[str]) -> str:
    """Return the text placed on the clipboard by "copy all"."""
    return FRAGMENT_SEPARATOR.join(fragments)


__all__ = ["FRAGMENT_SEPARATOR", "FragmentInvariantError", "generate_fragments", "join_fragments"]
