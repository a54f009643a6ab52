"""Problem+JSON utilities and global exception handlers.

Defines the RFC7807 media type and handler callables that turn HTTP errors,
request parsing failures and the domain error taxonomy into
application/problem+json responses.
"""

from __future__ import annotations

from typing import Any, Dict
import logging
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from fastapi.responses import JSONResponse

from sow_wizard.logic.errors import StoreError, WizardError

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


def problem(status: int, title: str, detail: str, code: str) -> Dict[str, Any]:
    return {"title": title, "status": int(status), "detail": detail, "code": code}


def problem_response(body: Dict[str, Any], headers: Dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(body, status_code=int(body["status"]), media_type=PROBLEM_MEDIA_TYPE, headers=headers)


async def handle_wizard_error(request: Request, exc: WizardError) -> JSONResponse:  # noqa: D401
    if isinstance(exc, StoreError):
        # Store internals are logged at the repository; clients get a generic message
        logger.error("store_error path=%s", request.url.path)
    else:
        logger.info("domain_error path=%s code=%s detail=%s", request.url.path, exc.code, exc.message)
    return problem_response(problem(exc.status_code, exc.title, exc.message, exc.code))


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    status_code = int(getattr(exc, "status_code", 500) or 500)
    if isinstance(exc.detail, dict):
        body = {"status": status_code, **exc.detail}
    else:
        body = problem(status_code, "Error", str(exc.detail or ""), f"HTTP_{status_code}")
    headers = dict(exc.headers) if isinstance(getattr(exc, "headers", None), dict) else None
    return problem_response(body, headers=headers)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    # Malformed bodies and parameters are a client error on every route (400, not 422)
    body = problem(400, "Invalid Request", "Invalid request body", "REQUEST_INVALID")
    body["errors"] = [
        {"loc": list(e.get("loc", ())), "msg": str(e.get("msg", ""))} for e in exc.errors()
    ]
    return problem_response(body)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return problem_response(problem(500, "Internal Server Error", "Internal server error", "INTERNAL_ERROR"))


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
    "handle_wizard_error",
    "problem",
    "problem_response",
]
