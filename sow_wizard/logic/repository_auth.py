"""Server-side auth session store.

Opaque random tokens are handed to the browser in an httpOnly cookie; the
token row maps back to the signed-in user until it expires or is revoked.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta

from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError

from sow_wizard.db.base import get_engine
from sow_wizard.logic.errors import StoreError
from sow_wizard.logic.timestamps import to_rfc3339, utc_now

logger = logging.getLogger(__name__)


def issue_session_token(user_id: str, ttl_seconds: int, *, now: datetime | None = None) -> str:
    """Persist and return a fresh session token for `user_id`."""
    token = secrets.token_urlsafe(32)
    issued = now or utc_now()
    eng = get_engine()
    try:
        with eng.begin() as conn:
            conn.execute(
                sql_text(
                    "INSERT INTO auth_session (token, user_id, created_at, expires_at) "
                    "VALUES (:tok, :uid, :created_at, :expires_at)"
                ),
                {
                    "tok": token,
                    "uid": str(user_id),
                    "created_at": to_rfc3339(issued),
                    "expires_at": to_rfc3339(issued + timedelta(seconds=int(ttl_seconds))),
                },
            )
    except SQLAlchemyError as exc:
        logger.error("issue_session_token failed user=%s", user_id, exc_info=True)
        raise StoreError() from exc
    return token


def resolve_session_token(token: str, *, now: datetime | None = None) -> str | None:
    """Return the user id behind a live token, or None when unknown/expired/revoked."""
    if not token:
        return None
    eng = get_engine()
    try:
        with eng.connect() as conn:
            row = conn.execute(
                sql_text(
                    "SELECT user_id FROM auth_session "
                    "WHERE token = :tok AND revoked_at IS NULL AND expires_at > :now"
                ),
                {"tok": str(token), "now": to_rfc3339(now or utc_now())},
            ).fetchone()
    except SQLAlchemyError as exc:
        logger.error("resolve_session_token failed", exc_info=True)
        raise StoreError() from exc
    return str(row[0]) if row else None


def revoke_session_token(token: str) -> bool:
    """Mark the token revoked; returns False when it was unknown or already revoked."""
    eng = get_engine()
    try:
        with eng.begin() as conn:
            result = conn.execute(
                sql_text(
                    "UPDATE auth_session SET revoked_at = :now WHERE token = :tok AND revoked_at IS NULL"
                ),
                {"tok": str(token), "now": to_rfc3339(utc_now())},
            )
    except SQLAlchemyError as exc:
        logger.error("revoke_session_token failed", exc_info=True)
        raise StoreError() from exc
    return bool(result.rowcount)


__all__ = ["issue_session_token", "resolve_session_token", "revoke_session_token"]
