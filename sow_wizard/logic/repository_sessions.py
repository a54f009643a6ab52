"""Wizard session data access.

Sessions are append-only: one row per completed wizard run, created already
complete. Every read takes the owner and filters on it, so a row belonging to
another user is indistinguishable from a missing one.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime
from typing import List, Sequence, Tuple

from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError

from sow_wizard.db.base import get_engine
from sow_wizard.logic.errors import NotFoundError, StoreError
from sow_wizard.logic.timestamps import to_rfc3339, utc_now
from sow_wizard.models.sessions import AnswerItem, SessionDetail, SessionSummary

logger = logging.getLogger(__name__)

_DETAIL_COLUMNS = "session_id, user_id, created_at, completed_at, answers, generated_fragments"


def _load_json(value):  # type: ignore[no-untyped-def]
    if isinstance(value, (str, bytes, bytearray)):
        return json.loads(value)
    return value


def _row_to_detail(row) -> SessionDetail:  # type: ignore[no-untyped-def]
    return SessionDetail(
        id=str(row[0]),
        user_id=str(row[1]),
        created_at=str(row[2]),
        # Older rows may lack completed_at; fall back to creation time
        completed_at=str(row[3] or row[2]),
        answers=[AnswerItem(**a) for a in _load_json(row[4]) or []],
        generated_fragments=[str(f) for f in _load_json(row[5]) or []],
    )


def create_session(
    owner: str,
    answers: Sequence[AnswerItem],
    fragments: Sequence[str],
    *,
    now: datetime | None = None,
) -> SessionDetail:
    """Insert a completed session and return the stored record.

    `completed_at` is the moment of insertion. Raises StoreError when the
    write fails; nothing is retried here.
    """
    session_id = str(uuid.uuid4())
    stamp = to_rfc3339(now or utc_now())
    params = {
        "sid": session_id,
        "uid": str(owner),
        "created_at": stamp,
        "completed_at": stamp,
        "answers": json.dumps([a.model_dump() for a in answers], ensure_ascii=False),
        "fragments": json.dumps(list(fragments), ensure_ascii=False),
    }
    eng = get_engine()
    try:
        with eng.begin() as conn:
            conn.execute(
                sql_text(
                    """
                    INSERT INTO wizard_session (
                        session_id, user_id, created_at, completed_at, answers, generated_fragments
                    )
                    VALUES (:sid, :uid, :created_at, :completed_at, :answers, :fragments)
                    """
                ),
                params,
            )
    except SQLAlchemyError as exc:
        logger.error("create_session insert failed owner=%s", owner, exc_info=True)
        raise StoreError() from exc
    return SessionDetail(
        id=session_id,
        user_id=str(owner),
        created_at=stamp,
        completed_at=stamp,
        answers=list(answers),
        generated_fragments=list(fragments),
    )


def get_session_by_id(session_id: str, owner: str) -> SessionDetail:
    """Return the session `session_id` owned by `owner` or raise NotFoundError."""
    eng = get_engine()
    try:
        with eng.connect() as conn:
            row = conn.execute(
                sql_text(
                    f"SELECT {_DETAIL_COLUMNS} FROM wizard_session "
                    "WHERE session_id = :sid AND user_id = :uid"
                ),
                {"sid": str(session_id), "uid": str(owner)},
            ).fetchone()
    except SQLAlchemyError as exc:
        logger.error("get_session_by_id failed sid=%s", session_id, exc_info=True)
        raise StoreError() from exc
    if row is None:
        raise NotFoundError("Session not found")
    try:
        return _row_to_detail(row)
    except (ValueError, TypeError) as exc:
        logger.error("get_session_by_id row decode failed sid=%s", session_id, exc_info=True)
        raise StoreError() from exc


def list_sessions(owner: str, limit: int, offset: int) -> Tuple[List[SessionSummary], int]:
    """Return one page of the owner's sessions (most recent first) and the total count.

    `limit`/`offset` are expected to be range-checked by the caller.
    """
    eng = get_engine()
    try:
        with eng.connect() as conn:
            total_row = conn.execute(
                sql_text("SELECT COUNT(*) FROM wizard_session WHERE user_id = :uid"),
                {"uid": str(owner)},
            ).fetchone()
            rows = conn.execute(
                sql_text(
                    "SELECT session_id, created_at, completed_at FROM wizard_session "
                    "WHERE user_id = :uid "
                    "ORDER BY completed_at DESC, created_at DESC, session_id DESC "
                    "LIMIT :lim OFFSET :off"
                ),
                {"uid": str(owner), "lim": int(limit), "off": int(offset)},
            ).fetchall()
    except SQLAlchemyError as exc:
        logger.error("list_sessions failed owner=%s", owner, exc_info=True)
        raise StoreError() from exc
    total = int(total_row[0]) if total_row and total_row[0] is not None else 0
    items = [
        SessionSummary(id=str(r[0]), created_at=str(r[1]), completed_at=str(r[2] or r[1]))
        for r in rows
    ]
    return items, total


__all__ = ["create_session", "get_session_by_id", "list_sessions"]
