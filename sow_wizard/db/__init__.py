"""Database bootstrap utilities for the wizard service.

Exposes engine construction, the SQL migrations runner and catalog seeding.
The DB layer does not leak rows into route handlers; repositories in
`sow_wizard.logic` convert them to pydantic models.
"""

from sow_wizard.db.base import dispose_engine, get_engine
from sow_wizard.db.migrations_runner import apply_migrations

__all__ = [
    "dispose_engine",
    "get_engine",
    "apply_migrations",
]
