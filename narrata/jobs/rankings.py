"""Batch job that recomputes stored leaderboard ranks."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.orm import Session

from narrata.core.errors import RankingBatchError
from narrata.core.logging import setup_logging
from narrata.db.base import SessionLocal
from narrata.services.ranking import update_rankings

logger = logging.getLogger(__name__)


@dataclass
class RankingJobResult:
    ok: bool
    entries_ranked: int = 0
    leader_user_id: Optional[int] = None
    error: Optional[str] = None


def run(session_factory: Callable[[], Session] = SessionLocal) -> RankingJobResult:
    """Run one ranking pass in its own session. Safe to retry after a failure."""
    db = session_factory()
    try:
        result = update_rankings(db)
    except RankingBatchError as exc:
        logger.error("Ranking job failed: %s", exc.message)
        return RankingJobResult(ok=False, entries_ranked=exc.committed, error=exc.message)
    finally:
        db.close()
    return RankingJobResult(
        ok=True,
        entries_ranked=result.entries_ranked,
        leader_user_id=result.leader_user_id,
    )


def main() -> int:
    setup_logging()
    result = run()
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
