"""Configuration utilities for the wizard service.

This module loads application configuration with the following rules:
- Primary source: `wizard_config.json` at the project root.
- Overrides: environment variables, then optional text files under `config/`.
- Validation: Pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_WIZARD_CONFIG = Path("wizard_config.json")
# Hard ceiling for GET /api/sessions page size; configuration may only lower it
MAX_SESSIONS_LIMIT = 50
logger = logging.getLogger(__name__)


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


def _truthy(value: object) -> bool:
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


class DatabaseConfig(BaseModel):
    dsn: str

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class AuthConfig(BaseModel):
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    redirect_url: str = "http://localhost:8000/api/auth/callback"
    cookie_name: str = "sow_session"
    cookie_secure: bool = False
    session_ttl_seconds: int = Field(default=7 * 24 * 3600, gt=0)
    post_login_redirect: str = "/"
    post_logout_redirect: str = "/login"

    @property
    def oauth_configured(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret)


class PaginationConfig(BaseModel):
    default_limit: int = Field(default=10, ge=1)
    max_limit: int = Field(default=MAX_SESSIONS_LIMIT, ge=1, le=MAX_SESSIONS_LIMIT)

    @field_validator("default_limit")
    @classmethod
    def default_within_ceiling(cls, v: int) -> int:
        if v > MAX_SESSIONS_LIMIT:
            raise ValueError(f"pagination.default_limit must be <= {MAX_SESSIONS_LIMIT}")
        return v


class AppConfig(BaseModel):
    database: DatabaseConfig
    auth: AuthConfig
    pagination: PaginationConfig
    log_level: str = "INFO"
    cors_origins: List[str] = Field(default_factory=list)


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) wizard_config.json at project root (primary base)
    4) Safe defaults for development
    """

    base = _read_json_file(ROOT_WIZARD_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    def _pick(env_key: str, file_key: str, base_key: str, default: Optional[str] = None) -> Optional[str]:
        return _env(env_key) or _read_config_file(file_key) or _base(base_key, default)

    # Database
    dsn = (
        _env("TEST_DATABASE_URL")
        or _pick("DATABASE_URL", "database.url", "database.dsn")
        or "sqlite+pysqlite:///:memory:"
    )

    # Google OAuth and the server-side session cookie
    client_id = _pick("GOOGLE_CLIENT_ID", "google.client_id", "auth.google_client_id")
    client_secret = _pick("GOOGLE_CLIENT_SECRET", "google.client_secret", "auth.google_client_secret")
    redirect_url = _pick(
        "OAUTH_REDIRECT_URL", "auth.redirect_url", "auth.redirect_url", "http://localhost:8000/api/auth/callback"
    )
    cookie_name = _pick("AUTH_COOKIE_NAME", "auth.cookie_name", "auth.cookie_name", "sow_session")
    cookie_secure_text = _pick("AUTH_COOKIE_SECURE", "auth.cookie_secure", "auth.cookie_secure", "false")
    ttl_text = _pick("AUTH_SESSION_TTL_SECONDS", "auth.session_ttl_seconds", "auth.session_ttl_seconds", "604800")
    post_login = _pick("POST_LOGIN_REDIRECT", "auth.post_login_redirect", "auth.post_login_redirect", "/")
    post_logout = _pick("POST_LOGOUT_REDIRECT", "auth.post_logout_redirect", "auth.post_logout_redirect", "/login")

    # Session list pagination
    default_limit_text = _pick("SESSIONS_DEFAULT_LIMIT", "sessions.default_limit", "pagination.default_limit", "10")
    max_limit_text = _pick(
        "SESSIONS_MAX_LIMIT", "sessions.max_limit", "pagination.max_limit", str(MAX_SESSIONS_LIMIT)
    )

    log_level = _pick("LOG_LEVEL", "log.level", "log_level", "INFO") or "INFO"
    cors_text = _pick("CORS_ORIGINS", "cors.origins", "cors_origins", "") or ""

    try:
        cfg = AppConfig(
            database=DatabaseConfig(dsn=dsn),
            auth=AuthConfig(
                google_client_id=client_id or None,
                google_client_secret=client_secret or None,
                redirect_url=redirect_url,
                cookie_name=cookie_name,
                cookie_secure=_truthy(cookie_secure_text),
                session_ttl_seconds=int(str(ttl_text).strip()),
                post_login_redirect=post_login,
                post_logout_redirect=post_logout,
            ),
            pagination=PaginationConfig(
                default_limit=int(str(default_limit_text).strip()),
                max_limit=int(str(max_limit_text).strip()),
            ),
            log_level=log_level.strip().upper(),
            cors_origins=[o.strip() for o in cors_text.split(",") if o.strip()],
        )
        return cfg
    except (PydanticValidationError, ValueError) as e:
        logger.error("Invalid application configuration: %s", e)
        raise


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Return the process-wide configuration, loading it on first use."""
    return load_config()


def reset_config_cache() -> None:
    get_config.cache_clear()


__all__ = [
    "AppConfig",
    "AuthConfig",
    "DatabaseConfig",
    "PaginationConfig",
    "MAX_SESSIONS_LIMIT",
    "get_config",
    "load_config",
    "reset_config_cache",
]
