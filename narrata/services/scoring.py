"""
Score Calculator.

Weights
-------
  story_score      = total_stories * 10 + featured_stories * 50
  engagement_score = total_views * 0.1 + total_likes * 2 + total_comments * 3
                     + total_shares * 5 + follower_count * 1
  quality_score    = likes_to_views_ratio * 1000 + comments_to_views_ratio * 1500
                     + featured_stories * 100
  total_score      = story_score * 0.3 + engagement_score * 0.5 + quality_score * 0.2

The coefficients are fixed constants, not settings: stored scores must stay
comparable across deployments.

Windowed scores
---------------
weekly_score / monthly_score apply the same total formula to the stories
published inside the trailing window (settings.LEADERBOARD_*_WINDOW_DAYS),
with the live follower count. Windows slide with time, so the ranking pass
refreshes them for every active entry (refresh_windowed_scores) before it
orders by them.

Public API
----------
calculate_scores(metrics)                  -> ScoreBreakdown   (pure)
windowed_total(stories, followers, ...)    -> float            (pure)
recalculate_entry(db, entry, now)          -> LeaderboardEntry (commits)
refresh_windowed_scores(db, entries, now)  -> None             (no commit)
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional, Sequence

from sqlalchemy.orm import Session

from narrata.core.config import settings
from narrata.core.errors import UserNotFoundError
from narrata.models.leaderboard import LeaderboardEntry
from narrata.models.story import Story, StoryStatus
from narrata.models.user import User
from narrata.services.metrics import (
    METRIC_FIELDS,
    StoryMetrics,
    fold_metrics,
    published_stories,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Weights
# ---------------------------------------------------------------------------

STORY_WEIGHT = 10
FEATURED_STORY_WEIGHT = 50

VIEW_WEIGHT = 0.1
LIKE_WEIGHT = 2
COMMENT_WEIGHT = 3
SHARE_WEIGHT = 5
FOLLOWER_WEIGHT = 1

LIKES_RATIO_WEIGHT = 1000
COMMENTS_RATIO_WEIGHT = 1500
FEATURED_QUALITY_WEIGHT = 100

STORY_SHARE = 0.3
ENGAGEMENT_SHARE = 0.5
QUALITY_SHARE = 0.2


@dataclass(frozen=True)
class ScoreBreakdown:
    story_score: float
    engagement_score: float
    quality_score: float
    total_score: float


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ---------------------------------------------------------------------------
# Pure scoring
# ---------------------------------------------------------------------------

def calculate_scores(metrics: StoryMetrics) -> ScoreBreakdown:
    story_score = (
        metrics.total_stories * STORY_WEIGHT
        + metrics.featured_stories * FEATURED_STORY_WEIGHT
    )
    engagement_score = (
        metrics.total_views * VIEW_WEIGHT
        + metrics.total_likes * LIKE_WEIGHT
        + metrics.total_comments * COMMENT_WEIGHT
        + metrics.total_shares * SHARE_WEIGHT
        + metrics.follower_count * FOLLOWER_WEIGHT
    )
    quality_score = (
        metrics.likes_to_views_ratio * LIKES_RATIO_WEIGHT
        + metrics.comments_to_views_ratio * COMMENTS_RATIO_WEIGHT
        + metrics.featured_stories * FEATURED_QUALITY_WEIGHT
    )
    total_score = (
        story_score * STORY_SHARE
        + engagement_score * ENGAGEMENT_SHARE
        + quality_score * QUALITY_SHARE
    )
    return ScoreBreakdown(
        story_score=float(story_score),
        engagement_score=float(engagement_score),
        quality_score=float(quality_score),
        total_score=float(total_score),
    )


def windowed_total(
    stories: Iterable[Story],
    follower_count: int,
    now: datetime,
    window_days: int,
) -> float:
    """Total score over stories published within the last `window_days`."""
    cutoff = _as_utc(now) - timedelta(days=window_days)
    recent = [
        s for s in stories
        if s.published_at is not None and _as_utc(s.published_at) >= cutoff
    ]
    return calculate_scores(fold_metrics(recent, follower_count)).total_score


# ---------------------------------------------------------------------------
# Persisted recalculation
# ---------------------------------------------------------------------------

def apply_metrics(entry: LeaderboardEntry, metrics: StoryMetrics) -> None:
    for name in METRIC_FIELDS:
        setattr(entry, name, getattr(metrics, name))


def apply_scores(entry: LeaderboardEntry, scores: ScoreBreakdown) -> None:
    entry.story_score = scores.story_score
    entry.engagement_score = scores.engagement_score
    entry.quality_score = scores.quality_score
    entry.total_score = scores.total_score


def recalculate_entry(
    db: Session,
    entry: LeaderboardEntry,
    now: Optional[datetime] = None,
) -> LeaderboardEntry:
    """
    Recompute metrics and every score for `entry` from the author's current
    published stories, stamp the calculation time and commit.

    Reads (user, stories) and the final write are not isolated from a
    concurrent publish for the same author; the next recalculation converges.
    """
    now = now or _utcnow()
    user = db.get(User, entry.user_id)
    if user is None:
        raise UserNotFoundError(entry.user_id)

    stories = published_stories(db, entry.user_id)
    metrics = fold_metrics(stories, user.follower_count)
    scores = calculate_scores(metrics)

    apply_metrics(entry, metrics)
    apply_scores(entry, scores)
    entry.weekly_score = windowed_total(
        stories, user.follower_count, now, settings.LEADERBOARD_WEEKLY_WINDOW_DAYS
    )
    entry.monthly_score = windowed_total(
        stories, user.follower_count, now, settings.LEADERBOARD_MONTHLY_WINDOW_DAYS
    )
    entry.last_calculated_at = now
    entry.last_activity_at = now

    db.commit()
    db.refresh(entry)
    logger.debug(
        "Recalculated leaderboard entry user_id=%s total=%.2f weekly=%.2f monthly=%.2f",
        entry.user_id, entry.total_score, entry.weekly_score, entry.monthly_score,
    )
    return entry


def refresh_windowed_scores(
    db: Session,
    entries: Sequence[LeaderboardEntry],
    now: Optional[datetime] = None,
) -> None:
    """
    Recompute weekly_score / monthly_score of `entries` against `now` in
    memory. Two reads cover the whole batch; the caller commits.
    """
    if not entries:
        return
    now = now or _utcnow()
    user_ids = [e.user_id for e in entries]

    followers = dict(
        db.query(User.id, User.follower_count).filter(User.id.in_(user_ids)).all()
    )
    by_author: dict[int, list[Story]] = defaultdict(list)
    stories = (
        db.query(Story)
        .filter(Story.author_id.in_(user_ids), Story.status == StoryStatus.published)
        .order_by(Story.id)
        .all()
    )
    for story in stories:
        by_author[story.author_id].append(story)

    for entry in entries:
        follower_count = followers.get(entry.user_id) or 0
        authored = by_author.get(entry.user_id, [])
        entry.weekly_score = windowed_total(
            authored, follower_count, now, settings.LEADERBOARD_WEEKLY_WINDOW_DAYS
        )
        entry.monthly_score = windowed_total(
            authored, follower_count, now, settings.LEADERBOARD_MONTHLY_WINDOW_DAYS
        )
