"""Question catalog data access.

Encapsulates DB reads/writes for the wizard's question catalog, keeping the
HTTP layer free of direct SQL. The catalog is read-only to the wizard; writes
happen only through out-of-band seeding.
"""

from __future__ import annotations

import json
import logging
from typing import Iterable, List

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError

from sow_wizard.db.base import get_engine
from sow_wizard.logic.errors import StoreError
from sow_wizard.logic.timestamps import to_rfc3339, utc_now
from sow_wizard.models.questions import Question

logger = logging.getLogger(__name__)


def _row_to_question(row) -> Question:  # type: ignore[no-untyped-def]
    options = row[3]
    if isinstance(options, (str, bytes, bytearray)):
        options = json.loads(options)
    return Question(
        id=str(row[0]),
        question_order=int(row[1]),
        question_text=str(row[2]),
        options=options,
    )


def list_questions() -> List[Question]:
    """Return the full catalog ordered ascending by `question_order`.

    Each call re-reads the store; nothing is cached so a submission is always
    checked against the catalog as it is at that moment.
    """
    eng = get_engine()
    try:
        with eng.connect() as conn:
            rows = conn.execute(
                sql_text(
                    "SELECT question_id, question_order, question_text, options "
                    "FROM question ORDER BY question_order ASC"
                )
            ).fetchall()
    except SQLAlchemyError as exc:
        logger.error("list_questions failed", exc_info=True)
        raise StoreError() from exc
    try:
        return [_row_to_question(r) for r in rows]
    except (ValueError, PydanticValidationError) as exc:
        # Malformed options JSON in a seeded row
        logger.error("list_questions row decode failed", exc_info=True)
        raise StoreError() from exc


def upsert_questions(questions: Iterable[Question]) -> int:
    """Insert or replace catalog rows in one transaction; returns the row count.

    Existing rows whose id is not in `questions` are removed first so the
    catalog keeps a dense 1-based order.
    """
    items = list(questions)
    eng = get_engine()
    now = to_rfc3339(utc_now())
    try:
        with eng.begin() as conn:
            keep = [q.id for q in items]
            existing = conn.execute(sql_text("SELECT question_id FROM question")).fetchall()
            for row in existing:
                if str(row[0]) not in keep:
                    conn.execute(sql_text("DELETE FROM question WHERE question_id = :qid"), {"qid": str(row[0])})
            # Park current orders out of range so re-numbering never trips the UNIQUE constraint
            conn.execute(sql_text("UPDATE question SET question_order = question_order + 100000"))
            for q in items:
                payload = {
                    "qid": q.id,
                    "ord": q.question_order,
                    "qtext": q.question_text,
                    "opts": json.dumps([o.model_dump() for o in q.options], ensure_ascii=False),
                    "created_at": now,
                }
                updated = conn.execute(
                    sql_text(
                        "UPDATE question SET question_order = :ord, question_text = :qtext, options = :opts "
                        "WHERE question_id = :qid"
                    ),
                    payload,
                )
                if updated.rowcount == 0:
                    conn.execute(
                        sql_text(
                            """
                            INSERT INTO question (question_id, question_order, question_text, options, created_at)
                            VALUES (:qid, :ord, :qtext, :opts, :created_at)
                            """
                        ),
                        payload,
                    )
    except SQLAlchemyError as exc:
        logger.error("upsert_questions failed count=%s", len(items), exc_info=True)
        raise StoreError() from exc
    logger.info("catalog_upserted count=%s", len(items))
    return len(items)


__all__ = ["list_questions", "upsert_questions"]
