"""Batch job that deactivates entries of authors with no published stories."""

from __future__ import annotations

import logging
import sys
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from narrata.core.logging import setup_logging
from narrata.db.base import SessionLocal
from narrata.services.lifecycle import deactivate_authors_without_published_stories

logger = logging.getLogger(__name__)


def run(session_factory: Callable[[], Session] = SessionLocal) -> int:
    """Run a single cleanup sweep and return the number of entries deactivated."""
    db = session_factory()
    try:
        return deactivate_authors_without_published_stories(db)
    finally:
        db.close()


def main() -> int:
    setup_logging()
    try:
        run()
    except SQLAlchemyError:
        logger.exception("Leaderboard cleanup failed")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
