"""
Ranking Engine — assigns 1-based ranks to every active entry per timeframe.

Ordering
--------
Each timeframe is a total order: score descending, then user_id ascending.
Ties therefore never share a rank and N active entries get exactly 1..N.

Rank advance
------------
advance_rank(pair, timeframe, new_rank) copies current → previous for that
timeframe and sets the new current rank in the same step. Rank deltas are
previous − current (positive = climbed).

Batch
-----
update_rankings(db, now) reads the active set once, refreshes the windowed
weekly/monthly scores against `now`, plans all three orders from that one
snapshot, then writes and commits entry by entry. On failure the
already-committed entries keep their new ranks and RankingBatchError is
raised to the caller.

The category rank is persisted but not assigned here; it stays 0.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from narrata.core.errors import InvalidTimeframeError, RankingBatchError
from narrata.models.leaderboard import LeaderboardEntry
from narrata.services.scoring import refresh_windowed_scores

logger = logging.getLogger(__name__)


class Timeframe(str, enum.Enum):
    overall = "overall"
    weekly = "weekly"
    monthly = "monthly"


RANKED_TIMEFRAMES: tuple[Timeframe, ...] = (
    Timeframe.overall,
    Timeframe.weekly,
    Timeframe.monthly,
)

SCORE_ATTRIBUTE = {
    Timeframe.overall: "total_score",
    Timeframe.weekly: "weekly_score",
    Timeframe.monthly: "monthly_score",
}


def parse_timeframe(value: str | Timeframe | None) -> Timeframe:
    if value is None:
        return Timeframe.overall
    if isinstance(value, Timeframe):
        return value
    try:
        return Timeframe(value)
    except ValueError:
        raise InvalidTimeframeError(value, [t.value for t in Timeframe]) from None


# ---------------------------------------------------------------------------
# Rank value objects (pure)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RankSet:
    overall: int = 0
    category: int = 0
    weekly: int = 0
    monthly: int = 0


@dataclass(frozen=True)
class RankPair:
    current: RankSet
    previous: RankSet

    def change(self, timeframe: Timeframe) -> int:
        return getattr(self.previous, timeframe.value) - getattr(self.current, timeframe.value)


def advance_rank(pair: RankPair, timeframe: Timeframe, new_rank: int) -> RankPair:
    field = timeframe.value
    return RankPair(
        current=replace(pair.current, **{field: new_rank}),
        previous=replace(pair.previous, **{field: getattr(pair.current, field)}),
    )


def read_ranks(entry: LeaderboardEntry) -> RankPair:
    return RankPair(
        current=RankSet(
            overall=entry.rank_overall or 0,
            category=entry.rank_category or 0,
            weekly=entry.rank_weekly or 0,
            monthly=entry.rank_monthly or 0,
        ),
        previous=RankSet(
            overall=entry.previous_rank_overall or 0,
            category=entry.previous_rank_category or 0,
            weekly=entry.previous_rank_weekly or 0,
            monthly=entry.previous_rank_monthly or 0,
        ),
    )


def write_ranks(entry: LeaderboardEntry, pair: RankPair) -> None:
    entry.rank_overall = pair.current.overall
    entry.rank_category = pair.current.category
    entry.rank_weekly = pair.current.weekly
    entry.rank_monthly = pair.current.monthly
    entry.previous_rank_overall = pair.previous.overall
    entry.previous_rank_category = pair.previous.category
    entry.previous_rank_weekly = pair.previous.weekly
    entry.previous_rank_monthly = pair.previous.monthly


# ---------------------------------------------------------------------------
# Ordering (pure)
# ---------------------------------------------------------------------------

def score_of(entry: LeaderboardEntry, timeframe: Timeframe) -> float:
    return getattr(entry, SCORE_ATTRIBUTE[timeframe]) or 0.0


def rank_order(
    entries: Iterable[LeaderboardEntry],
    timeframe: Timeframe,
) -> list[LeaderboardEntry]:
    return sorted(entries, key=lambda e: (-score_of(e, timeframe), e.user_id))


def plan_rankings(entries: Sequence[LeaderboardEntry]) -> dict[int, RankPair]:
    """Map entry.id → rank pair after one pass over every timeframe."""
    plan = {e.id: read_ranks(e) for e in entries}
    for timeframe in RANKED_TIMEFRAMES:
        for position, entry in enumerate(rank_order(entries, timeframe), start=1):
            plan[entry.id] = advance_rank(plan[entry.id], timeframe, position)
    return plan


# ---------------------------------------------------------------------------
# Batch job
# ---------------------------------------------------------------------------

@dataclass
class RankingResult:
    entries_ranked: int
    leader_user_id: int | None


def active_entries(db: Session) -> list[LeaderboardEntry]:
    return (
        db.query(LeaderboardEntry)
        .filter(LeaderboardEntry.is_active.is_(True))
        .order_by(LeaderboardEntry.user_id)
        .all()
    )


def update_rankings(db: Session, now: Optional[datetime] = None) -> RankingResult:
    """
    Recompute overall / weekly / monthly ranks for all active entries.
    Windowed scores are refreshed first and persisted with the first commit.
    Commits per entry; raises RankingBatchError on the first failure.
    """
    entries = active_entries(db)
    refresh_windowed_scores(db, entries, now)
    plan = plan_rankings(entries)
    leader = next(iter(rank_order(entries, Timeframe.overall)), None)
    leader_user_id = leader.user_id if leader else None

    # Commits expire loaded instances; resolve keys before the first write.
    work = [(entry, entry.user_id, plan[entry.id]) for entry in entries]

    committed = 0
    for entry, user_id, pair in work:
        try:
            write_ranks(entry, pair)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(
                "Ranking pass failed at user_id=%s after %d/%d entries",
                user_id, committed, len(entries),
            )
            raise RankingBatchError(committed, len(entries), str(exc)) from exc
        committed += 1

    logger.info("Leaderboard rankings updated: %d active entries", committed)
    return RankingResult(
        entries_ranked=committed,
        leader_user_id=leader_user_id,
    )
