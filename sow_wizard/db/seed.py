"""Out-of-band seeding of the question catalog from a YAML file.

The file holds a top-level `questions` list; each entry is validated against
the `Question` model, then the set as a whole must have a dense 1-based
`question_order` and unique ids.

Usage: python -m sow_wizard.db.seed [path/to/catalog.yaml]
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Sequence

import yaml
from pydantic import ValidationError as PydanticValidationError

from sow_wizard.models.questions import Question

logger = logging.getLogger(__name__)

DEFAULT_CATALOG = Path(__file__).resolve().parent / "catalog.yaml"


class CatalogError(ValueError):
    pass


def check_catalog(questions: Sequence[Question]) -> None:
    """Raise CatalogError unless ids are unique, options unique per question, and order dense from 1."""
    ids = [q.id for q in questions]
    if len(set(ids)) != len(ids):
        raise CatalogError("question ids must be unique")
    orders = sorted(q.question_order for q in questions)
    if orders != list(range(1, len(questions) + 1)):
        raise CatalogError("question_order must be dense and 1-based")
    for q in questions:
        option_ids = [o.id for o in q.options]
        if len(set(option_ids)) != len(option_ids):
            raise CatalogError(f"option ids must be unique within question {q.id}")


def load_catalog_file(path: str | Path = DEFAULT_CATALOG) -> List[Question]:
    raw = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    entries = raw.get("questions") if isinstance(raw, dict) else None
    if not isinstance(entries, list):
        raise CatalogError(f"{path}: expected a top-level 'questions' list")
    try:
        questions = [Question.model_validate(e) for e in entries]
    except PydanticValidationError as exc:
        raise CatalogError(f"{path}: {exc}") from exc
    check_catalog(questions)
    return sorted(questions, key=lambda q: q.question_order)


def seed_catalog(path: str | Path = DEFAULT_CATALOG) -> int:
    """Load, validate and store the catalog; returns the number of questions."""
    from sow_wizard.logic.repository_questions import upsert_questions

    questions = load_catalog_file(path)
    return upsert_questions(questions)


def main(argv: Sequence[str] | None = None) -> int:
    from sow_wizard.db.base import get_engine
    from sow_wizard.db.migrations_runner import apply_migrations
    from sow_wizard.logging_setup import configure_logging

    parser = argparse.ArgumentParser(description="Seed the wizard question catalog")
    parser.add_argument("catalog", nargs="?", default=str(DEFAULT_CATALOG))
    parser.add_argument("--no-migrate", action="store_true", help="skip applying SQL migrations first")
    args = parser.parse_args(argv)

    configure_logging()
    if not args.no_migrate:
        apply_migrations(get_engine())
    count = seed_catalog(args.catalog)
    logger.info("catalog_seeded path=%s count=%s", args.catalog, count)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
