"""Pydantic models for the question catalog.

Field names follow the public JSON contract of GET /api/questions.
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class AnswerOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    text: str
    # Document text contributed to the session output when this option is chosen
    sow_fragment: str


class Question(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    question_order: int = Field(ge=1)
    question_text: str
    options: List[AnswerOption] = Field(min_length=1)

    def option_by_id(self, answer_id: str) -> AnswerOption | None:
        for option in self.options:
            if option.id == answer_id:
                return option
        return None


class QuestionsListResponse(BaseModel):
    questions: List[Question]
    total: int


__all__ = ["AnswerOption", "Question", "QuestionsListResponse"]
