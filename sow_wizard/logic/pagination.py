"""Parsing of GET /api/sessions pagination parameters.

Out-of-range or non-numeric values are rejected here, before any store call.
"""

from __future__ import annotations

from typing import Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from sow_wizard.logic.errors import SubmissionValidationError
from sow_wizard.models.sessions import SessionsQuery

INVALID_LIMIT = "Invalid limit parameter"
INVALID_OFFSET = "Invalid offset parameter"


def parse_pagination(
    limit: Optional[str],
    offset: Optional[str],
    *,
    default_limit: int = 10,
    max_limit: int | None = None,
) -> Tuple[int, int]:
    """Return validated `(limit, offset)`; absent values take the defaults.

    limit must be an integer in [1, max_limit] (max_limit <= 50), offset an
    integer >= 0. The first failing field decides the message.
    """
    raw: dict = {"limit": default_limit, "offset": 0}
    if limit is not None:
        raw["limit"] = limit.strip() if isinstance(limit, str) else limit
    if offset is not None:
        raw["offset"] = offset.strip() if isinstance(offset, str) else offset
    try:
        query = SessionsQuery.model_validate(raw)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = first.get("loc", ("limit",))[0]
        raise SubmissionValidationError(INVALID_OFFSET if field == "offset" else INVALID_LIMIT) from exc
    if max_limit is not None and query.limit > max_limit:
        raise SubmissionValidationError(INVALID_LIMIT)
    return query.limit, query.offset


__all__ = ["INVALID_LIMIT", "INVALID_OFFSET", "parse_pagination"]
