"""Profile data access.

One row per user holding the single mutable flag `has_seen_welcome`.
"""

from __future__ import annotations

import logging

from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError

from sow_wizard.db.base import get_engine
from sow_wizard.logic.errors import NotFoundError, StoreError
from sow_wizard.logic.timestamps import to_rfc3339, utc_now
from sow_wizard.models.profile import ProfileResponse

logger = logging.getLogger(__name__)


def _select_profile(conn, owner: str):  # type: ignore[no-untyped-def]
    return conn.execute(
        sql_text("SELECT user_id, has_seen_welcome, created_at FROM profile WHERE user_id = :uid"),
        {"uid": str(owner)},
    ).fetchone()


def _row_to_profile(row) -> ProfileResponse:  # type: ignore[no-untyped-def]
    return ProfileResponse(id=str(row[0]), has_seen_welcome=bool(row[1]), created_at=str(row[2]))


def get_profile(owner: str) -> ProfileResponse:
    """Return the owner's profile or raise NotFoundError."""
    eng = get_engine()
    try:
        with eng.connect() as conn:
            row = _select_profile(conn, owner)
    except SQLAlchemyError as exc:
        logger.error("get_profile failed owner=%s", owner, exc_info=True)
        raise StoreError() from exc
    if row is None:
        logger.warning("profile_not_found owner=%s", owner)
        raise NotFoundError("Profile not found")
    return _row_to_profile(row)


def ensure_profile(owner: str, email: str | None = None) -> ProfileResponse:
    """Create the owner's profile on first sign-in; return the existing one otherwise."""
    eng = get_engine()
    try:
        with eng.begin() as conn:
            row = _select_profile(conn, owner)
            if row is None:
                conn.execute(
                    sql_text(
                        "INSERT INTO profile (user_id, email, has_seen_welcome, created_at) "
                        "VALUES (:uid, :email, :seen, :created_at)"
                    ),
                    {"uid": str(owner), "email": email, "seen": False, "created_at": to_rfc3339(utc_now())},
                )
                row = _select_profile(conn, owner)
            elif email:
                conn.execute(
                    sql_text("UPDATE profile SET email = :email WHERE user_id = :uid"),
                    {"uid": str(owner), "email": email},
                )
    except SQLAlchemyError as exc:
        logger.error("ensure_profile failed owner=%s", owner, exc_info=True)
        raise StoreError() from exc
    return _row_to_profile(row)


def set_welcome_seen(owner: str) -> ProfileResponse:
    """Set `has_seen_welcome` to true unconditionally and return the profile.

    There is no path that clears the flag again.
    """
    eng = get_engine()
    try:
        with eng.begin() as conn:
            result = conn.execute(
                sql_text("UPDATE profile SET has_seen_welcome = :seen WHERE user_id = :uid"),
                {"uid": str(owner), "seen": True},
            )
            if result.rowcount == 0:
                raise NotFoundError("Profile not found")
            row = _select_profile(conn, owner)
    except SQLAlchemyError as exc:
        logger.error("set_welcome_seen failed owner=%s", owner, exc_info=True)
        raise StoreError() from exc
    return _row_to_profile(row)


__all__ = ["ensure_profile", "get_profile", "set_welcome_seen"]
