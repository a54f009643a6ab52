from __future__ import annotations

import logging
import os
from typing import Callable

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from sow_wizard.config import get_config
from sow_wizard.db.base import get_engine
from sow_wizard.db.migrations_runner import apply_migrations
from sow_wizard.http.problem import (
    handle_http_exception,
    handle_request_validation_error,
    handle_unexpected_error,
    handle_wizard_error,
)
from sow_wizard.http.request_id import RequestIdMiddleware
from sow_wizard.logging_setup import configure_logging
from sow_wizard.logic.errors import WizardError
from sow_wizard.middleware.cors import apply_cors
from sow_wizard.routes import api_router

logger = logging.getLogger(__name__)


def _health_check() -> Callable[[], dict]:
    def check() -> dict:
        try:
            with get_engine().connect() as conn:
                conn.execute(sql_text("SELECT 1")).fetchone()
            return {"status": "ok", "db": True}
        except SQLAlchemyError:
            logger.error("Health DB check failed", exc_info=True)
            return {"status": "degraded", "db": False}

    return check


def create_app() -> FastAPI:
    """Build the wizard API application.

    Logging is configured first. Migrations run on startup only when
    AUTO_APPLY_MIGRATIONS is set.
    """
    cfg = get_config()
    configure_logging(cfg.log_level)
    app = FastAPI(title="SOW Wizard", version="1.0.0")

    app.add_exception_handler(WizardError, handle_wizard_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    apply_cors(app, origins=cfg.cors_origins or None)
    app.add_middleware(RequestIdMiddleware)

    @app.on_event("startup")
    def _apply_migrations_on_startup() -> None:
        enable_flag = os.getenv("AUTO_APPLY_MIGRATIONS", "").strip().lower() in {"1", "true", "yes", "on"}
        if not enable_flag:
            logger.info("AUTO_APPLY_MIGRATIONS disabled; skipping migrations at startup")
            return
        try:
            applied = apply_migrations(get_engine())
        except Exception:
            logger.error("Failed to apply migrations at startup", exc_info=True)
            raise
        logger.info("startup_migrations_applied count=%s", len(applied))

    app.include_router(api_router, prefix="/api")

    health_check = _health_check()

    @app.get("/health")
    def health():
        return health_check()

    return app

