"""
Story and account transitions that feed the leaderboard.

Each story transition commits the story change first and only then runs the
matching leaderboard hook. The hook's outcome is returned alongside the
story in a StoryTransition; it never undoes the story change.

Public API
----------
register_user(db, username, full_name)                 -> User
delete_user(db, user_id)                               -> None
create_story(db, author_id, title, category, ...)      -> StoryTransition
publish_story(db, story_id)                            -> StoryTransition
unpublish_story(db, story_id)                          -> StoryTransition
delete_story(db, story_id)                             -> StoryTransition
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from narrata.core.errors import StoryNotFoundError, StoryStateError, UserNotFoundError
from narrata.models.story import Story, StoryStatus
from narrata.models.user import User
from narrata.services.lifecycle import (
    LeaderboardUpdate,
    on_story_deleted,
    on_story_published,
    on_story_unpublished,
    on_user_deleted,
    on_user_registered,
)


@dataclass
class StoryTransition:
    story: Optional[Story]              # None after deletion
    story_id: int
    leaderboard: Optional[LeaderboardUpdate] = None   # None when no hook ran


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _ev(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


def _get_story(db: Session, story_id: int) -> Story:
    story = db.get(Story, story_id)
    if story is None:
        raise StoryNotFoundError(story_id)
    return story


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

def register_user(db: Session, username: str, full_name: Optional[str] = None) -> User:
    user = User(username=username.strip().lower(), full_name=full_name)
    db.add(user)
    db.commit()
    db.refresh(user)
    on_user_registered(db, user)
    return user


def delete_user(db: Session, user_id: int) -> None:
    """
    Soft-delete the account: drop its leaderboard entry, deactivate the user
    and tombstone the username so it can be registered again. Stories stay.
    """
    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise UserNotFoundError(user_id)
    on_user_deleted(db, user_id)
    stamp = int(_utcnow().timestamp())
    # Unique through the id; truncated to the column width.
    user.username = f"deleted_{stamp}_{user.id}_{user.username}"[:64]
    user.is_active = False
    db.commit()


# ---------------------------------------------------------------------------
# Stories
# ---------------------------------------------------------------------------

def create_story(
    db: Session,
    author_id: int,
    title: str,
    category: str = "Other",
    publish: bool = False,
    featured: bool = False,
) -> StoryTransition:
    author = db.get(User, author_id)
    if author is None:
        raise UserNotFoundError(author_id)

    story = Story(
        author_id=author_id,
        title=title,
        category=category,
        featured=featured,
        status=StoryStatus.published if publish else StoryStatus.draft,
        published_at=_utcnow() if publish else None,
    )
    db.add(story)
    # Counter includes drafts
    author.total_stories = (author.total_stories or 0) + 1
    db.commit()
    db.refresh(story)

    leaderboard = on_story_published(db, author_id) if publish else None
    return StoryTransition(story=story, story_id=story.id, leaderboard=leaderboard)


def publish_story(db: Session, story_id: int) -> StoryTransition:
    story = _get_story(db, story_id)
    if _ev(story.status) == StoryStatus.published.value:
        raise StoryStateError(story_id, _ev(story.status), "Story is already published.")

    story.status = StoryStatus.published
    story.published_at = _utcnow()
    db.commit()
    db.refresh(story)

    leaderboard = on_story_published(db, story.author_id)
    return StoryTransition(story=story, story_id=story_id, leaderboard=leaderboard)


def unpublish_story(db: Session, story_id: int) -> StoryTransition:
    story = _get_story(db, story_id)
    if _ev(story.status) != StoryStatus.published.value:
        raise StoryStateError(story_id, _ev(story.status), "Story is not published.")

    story.status = StoryStatus.draft
    story.published_at = None
    db.commit()
    db.refresh(story)

    leaderboard = on_story_unpublished(db, story.author_id)
    return StoryTransition(story=story, story_id=story_id, leaderboard=leaderboard)


def delete_story(db: Session, story_id: int) -> StoryTransition:
    story = _get_story(db, story_id)
    author_id = story.author_id

    author = db.get(User, author_id)
    if author is not None and (author.total_stories or 0) > 0:
        author.total_stories -= 1
    db.delete(story)
    db.commit()

    leaderboard = on_story_deleted(db, author_id)
    return StoryTransition(story=None, story_id=story_id, leaderboard=leaderboard)
