"""FastAPI application package for the SOW questionnaire wizard.

Users sign in with Google, answer a fixed, ordered questionnaire, and receive
the statement-of-work fragments their answers select. This package exposes an
application factory; business logic lives in `sow_wizard/logic/` and route
handlers in `sow_wizard/routes/`.
"""

from __future__ import annotations

from sow_wizard.main import create_app

__all__ = ["create_app"]
