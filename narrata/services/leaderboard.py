"""
Leaderboard read surface and synchronous score operations.

Public API
----------
get_leaderboard(db, timeframe, limit, offset)   -> (total, list[RankedEntry])
get_user_rank(db, user_id, timeframe)           -> UserRank
recalculate_user_score(db, user_id)             -> LeaderboardEntry   (errors propagate)
award_badge(db, user_id, name, description, icon)
award_achievement(db, user_id, achievement_type, description, value)
get_user_awards(db, user_id)                    -> (badges, achievements)
get_leaderboard_stats(db)                       -> LeaderboardStats
get_top_writers(db, timeframe, category, limit)  -> list[TopWriter]
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from narrata.core.config import settings
from narrata.core.errors import (
    InvalidTimeframeError,
    LeaderboardEntryNotFoundError,
    UserNotFoundError,
)
from narrata.models.leaderboard import LeaderboardEntry
from narrata.models.story import STORY_CATEGORIES, Story, StoryStatus
from narrata.models.user import User
from narrata.services import badges as ledger
from narrata.services.lifecycle import ensure_entry, get_entry
from narrata.services.ranking import (
    SCORE_ATTRIBUTE,
    Timeframe,
    parse_timeframe,
    read_ranks,
)
from narrata.services.scoring import recalculate_entry


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class RankedEntry:
    rank: int                   # 1-based position in this listing
    entry: LeaderboardEntry
    user: User


@dataclass
class UserRank:
    timeframe: Timeframe
    rank: int                   # stored rank from the last ranking pass; 0 = unranked
    previous_rank: int
    rank_change: int            # previous - current; positive = climbed
    entry: LeaderboardEntry
    user: User


@dataclass
class LeaderboardStats:
    total_participants: int
    total_stories: int
    total_views: int
    total_users: int
    top_scorer: Optional[RankedEntry]


@dataclass
class TopWriter:
    rank: int
    user: User
    total_stories: int
    total_views: int
    total_likes: int
    total_comments: int
    average_rating: float
    engagement_score: float
    quality_score: float        # likes / views; 0 without views


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _active_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise UserNotFoundError(user_id)
    return user


def _ordered_active(db: Session, timeframe: Timeframe):
    score_col = getattr(LeaderboardEntry, SCORE_ATTRIBUTE[timeframe])
    return (
        db.query(LeaderboardEntry, User)
        .join(User, User.id == LeaderboardEntry.user_id)
        .filter(LeaderboardEntry.is_active.is_(True))
        .order_by(score_col.desc(), LeaderboardEntry.user_id.asc())
    )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def get_leaderboard(
    db: Session,
    timeframe: str | Timeframe | None = None,
    limit: int = 10,
    offset: int = 0,
) -> tuple[int, list[RankedEntry]]:
    """Return (total active entries, page) sorted by the timeframe's score."""
    tf = parse_timeframe(timeframe)
    total = (
        db.query(func.count(LeaderboardEntry.id))
        .filter(LeaderboardEntry.is_active.is_(True))
        .scalar()
        or 0
    )
    rows = _ordered_active(db, tf).offset(offset).limit(limit).all()
    page = [
        RankedEntry(rank=offset + i + 1, entry=entry, user=user)
        for i, (entry, user) in enumerate(rows)
    ]
    return total, page


def get_user_rank(
    db: Session,
    user_id: int,
    timeframe: str | Timeframe | None = None,
) -> UserRank:
    tf = parse_timeframe(timeframe)
    user = _active_user(db, user_id)
    entry = get_entry(db, user_id)
    if entry is None:
        raise LeaderboardEntryNotFoundError(user_id)

    ranks = read_ranks(entry)
    return UserRank(
        timeframe=tf,
        rank=getattr(ranks.current, tf.value),
        previous_rank=getattr(ranks.previous, tf.value),
        rank_change=ranks.change(tf),
        entry=entry,
        user=user,
    )


def get_user_awards(db: Session, user_id: int) -> tuple[list[ledger.Badge], list[ledger.Achievement]]:
    _active_user(db, user_id)
    entry = get_entry(db, user_id)
    if entry is None:
        return [], []
    return list(ledger.load_badges(entry)), list(ledger.load_achievements(entry))


def get_leaderboard_stats(db: Session) -> LeaderboardStats:
    participants = (
        db.query(func.count(LeaderboardEntry.id))
        .filter(LeaderboardEntry.is_active.is_(True))
        .scalar()
        or 0
    )
    published = (
        db.query(func.count(Story.id))
        .filter(Story.status == StoryStatus.published)
        .scalar()
        or 0
    )
    views = (
        db.query(func.coalesce(func.sum(Story.views), 0))
        .filter(Story.status == StoryStatus.published)
        .scalar()
        or 0
    )
    users = (
        db.query(func.count(User.id))
        .filter(User.is_active.is_(True))
        .scalar()
        or 0
    )
    top = _ordered_active(db, Timeframe.overall).first()

    return LeaderboardStats(
        total_participants=participants,
        total_stories=published,
        total_views=int(views),
        total_users=users,
        top_scorer=RankedEntry(rank=1, entry=top[0], user=top[1]) if top else None,
    )



TOP_WRITER_TIMEFRAMES = ("overall", "weekly", "monthly", "yearly")
YEARLY_WINDOW_DAYS = 365


def _top_writer_cutoff(timeframe: str, now: datetime) -> Optional[datetime]:
    days = {
        "weekly": settings.LEADERBOARD_WEEKLY_WINDOW_DAYS,
        "monthly": settings.LEADERBOARD_MONTHLY_WINDOW_DAYS,
        "yearly": YEARLY_WINDOW_DAYS,
    }.get(timeframe)
    return now - timedelta(days=days) if days else None


def get_top_writers(
    db: Session,
    timeframe: Optional[str] = None,
    category: Optional[str] = None,
    limit: int = 10,
    now: Optional[datetime] = None,
) -> list[TopWriter]:
    """
    Rank active authors by engagement over their published stories, computed
    live from the stories rather than from stored leaderboard entries.

    engagement = sum(views * 0.1 + likes * 2 + comments * 3)

    `category` filters stories when it names a known category; "all" or an
    unknown name applies no filter. `timeframe` limits stories to a trailing
    publish window. `limit` is clamped to 1..LEADERBOARD_MAX_PAGE_SIZE.
    """
    timeframe = timeframe or "overall"
    if timeframe not in TOP_WRITER_TIMEFRAMES:
        raise InvalidTimeframeError(timeframe, list(TOP_WRITER_TIMEFRAMES))
    limit = max(1, min(settings.LEADERBOARD_MAX_PAGE_SIZE, limit))
    now = now or datetime.now(tz=timezone.utc)

    votes = Story.likes + Story.dislikes
    rating = case((votes > 0, Story.likes * 5.0 / votes), else_=0.0)
    engagement = func.sum(Story.views * 0.1 + Story.likes * 2 + Story.comments * 3)

    query = (
        db.query(
            Story.author_id,
            func.count(Story.id),
            func.coalesce(func.sum(Story.views), 0),
            func.coalesce(func.sum(Story.likes), 0),
            func.coalesce(func.sum(Story.comments), 0),
            func.avg(rating),
            engagement,
        )
        .join(User, User.id == Story.author_id)
        .filter(Story.status == StoryStatus.published, User.is_active.is_(True))
    )
    if category and category != "all" and category in STORY_CATEGORIES:
        query = query.filter(Story.category == category)
    cutoff = _top_writer_cutoff(timeframe, now)
    if cutoff is not None:
        query = query.filter(Story.published_at >= cutoff)

    rows = (
        query.group_by(Story.author_id)
        .order_by(engagement.desc(), Story.author_id.asc())
        .limit(limit)
        .all()
    )
    users = {
        u.id: u
        for u in db.query(User).filter(User.id.in_([r[0] for r in rows])).all()
    }

    writers = []
    for position, row in enumerate(rows, start=1):
        author_id, count, views, likes, comments, avg_rating, score = row
        views, likes = int(views), int(likes)
        writers.append(TopWriter(
            rank=position,
            user=users[author_id],
            total_stories=count,
            total_views=views,
            total_likes=likes,
            total_comments=int(comments),
            average_rating=float(avg_rating or 0),
            engagement_score=float(score or 0),
            quality_score=likes / views if views else 0.0,
        ))
    return writers


# ---------------------------------------------------------------------------
# Commands (errors propagate to the caller)
# ---------------------------------------------------------------------------

def recalculate_user_score(db: Session, user_id: int) -> LeaderboardEntry:
    """Create the entry if needed and recompute its scores. Idempotent."""
    _active_user(db, user_id)
    entry = ensure_entry(db, user_id)
    return recalculate_entry(db, entry)


def award_badge(
    db: Session,
    user_id: int,
    name: str,
    description: str,
    icon: Optional[str] = None,
) -> tuple[LeaderboardEntry, bool]:
    _active_user(db, user_id)
    ledger.validate_badge(name, description)
    entry = ensure_entry(db, user_id)
    added = ledger.add_badge(db, entry, name, description, icon)
    return entry, added


def award_achievement(
    db: Session,
    user_id: int,
    achievement_type: str,
    description: str,
    value: Optional[float] = None,
) -> tuple[LeaderboardEntry, bool]:
    _active_user(db, user_id)
    ledger.validate_achievement(achievement_type, description)
    entry = ensure_entry(db, user_id)
    added = ledger.add_achievement(db, entry, achievement_type, description, value)
    return entry, added
