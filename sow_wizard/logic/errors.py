"""Error taxonomy shared by the server routes and the client-side wizard.

Each error carries the HTTP status and problem code it maps to at the API
boundary. `SubmissionValidationError.reason` is propagated unchanged so the
offending question_id/answer_id reaches the user verbatim.
"""

from __future__ import annotations


class WizardError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    title: str = "Internal Server Error"
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.title)
        self.message = message or self.title


class AuthError(WizardError):
    status_code = 401
    title = "Unauthorized"
    code = "AUTH_REQUIRED"

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class SubmissionValidationError(WizardError):
    """A request or candidate submission failed validation (first violation wins)."""

    status_code = 400
    title = "Invalid Request"
    code = "VALIDATION_FAILED"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


# Short alias used across the codebase and in tests
ValidationError = SubmissionValidationError


class NotFoundError(WizardError):
    status_code = 404
    title = "Not Found"
    code = "RESOURCE_NOT_FOUND"

    def __init__(self, message: str = "Not found") -> None:
        super().__init__(message)


class StoreError(WizardError):
    """The external data store failed; transient, retried only by the caller."""

    status_code = 500
    title = "Internal Server Error"
    code = "STORE_UNAVAILABLE"

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)


class WizardBusyError(WizardError):
    """A wizard submission or catalog fetch is already in flight."""

    status_code = 409
    title = "Conflict"
    code = "WIZARD_BUSY"

    def __init__(self, message: str = "wizard operation already in progress") -> None:
        super().__init__(message)


__all__ = [
    "WizardError",
    "AuthError",
    "SubmissionValidationError",
    "ValidationError",
    "NotFoundError",
    "StoreError",
    "WizardBusyError",
]
