"""
Metrics Collector — folds an author's published stories into a snapshot.

Public API
----------
published_stories(db, user_id)            -> list[Story]
fold_metrics(stories, follower_count)     -> StoryMetrics   (pure)
collect_metrics(db, user_id)              -> StoryMetrics   (read only)

Drafts and archived stories never contribute. `total_stories` is taken from
the same published-only set as `published_stories`, so both are equal; the
all-states counter lives on User.total_stories.
"""
from __future__ import annotations

from dataclasses import dataclass, fields, asdict
from typing import Iterable

from sqlalchemy.orm import Session

from narrata.core.errors import UserNotFoundError
from narrata.models.story import Story, StoryStatus
from narrata.models.user import User


@dataclass(frozen=True)
class StoryMetrics:
    total_stories: int = 0
    published_stories: int = 0
    total_views: int = 0
    total_likes: int = 0
    total_comments: int = 0
    total_shares: int = 0
    average_rating: float = 0.0
    follower_count: int = 0
    average_views_per_story: float = 0.0
    average_likes_per_story: float = 0.0
    average_comments_per_story: float = 0.0
    featured_stories: int = 0
    likes_to_views_ratio: float = 0.0
    comments_to_views_ratio: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


METRIC_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(StoryMetrics))


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


def fold_metrics(stories: Iterable[Story], follower_count: int = 0) -> StoryMetrics:
    """Aggregate already-filtered published stories. No I/O."""
    count = views = likes = comments = shares = featured = 0
    rating_sum = 0.0
    for story in stories:
        count += 1
        views += story.views or 0
        likes += story.likes or 0
        comments += story.comments or 0
        shares += story.shares or 0
        rating_sum += story.rating
        if story.featured:
            featured += 1

    return StoryMetrics(
        total_stories=count,
        published_stories=count,
        total_views=views,
        total_likes=likes,
        total_comments=comments,
        total_shares=shares,
        average_rating=_ratio(rating_sum, count),
        follower_count=follower_count or 0,
        average_views_per_story=_ratio(views, count),
        average_likes_per_story=_ratio(likes, count),
        average_comments_per_story=_ratio(comments, count),
        featured_stories=featured,
        likes_to_views_ratio=_ratio(likes, views),
        comments_to_views_ratio=_ratio(comments, views),
    )


def published_stories(db: Session, user_id: int) -> list[Story]:
    return (
        db.query(Story)
        .filter(Story.author_id == user_id, Story.status == StoryStatus.published)
        .order_by(Story.id)
        .all()
    )


def count_published_stories(db: Session, user_id: int) -> int:
    return (
        db.query(Story)
        .filter(Story.author_id == user_id, Story.status == StoryStatus.published)
        .count()
    )


def collect_metrics(db: Session, user_id: int) -> StoryMetrics:
    """Fetch the user and their published stories, then fold them."""
    user = db.get(User, user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return fold_metrics(published_stories(db, user_id), user.follower_count)
