"""
Leaderboard entry lifecycle.

State per user:  Absent ──register / first publish──▶ Active
                 Active ──last published story gone──▶ Inactive
                 Inactive ──publish──▶ Active (reactivated before scoring)
                 any ──account deleted──▶ Absent (and stays absent: publish
                                           hooks skip deactivated accounts)

Story hooks (on_story_*) run after the story change has been committed and
never raise: a failed rescore is logged and reported in the returned
LeaderboardUpdate, and the story change stands. Callers that need errors to
propagate (e.g. an explicit "recalculate my score" request) use
narrata.services.leaderboard.recalculate_user_score instead.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from narrata.models.leaderboard import LeaderboardEntry
from narrata.models.story import Story, StoryStatus
from narrata.models.user import User
from narrata.services.metrics import count_published_stories
from narrata.services.scoring import recalculate_entry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------

@dataclass
class LeaderboardUpdate:
    """Outcome of a leaderboard side effect attached to a story action."""
    ok: bool
    entry_id: Optional[int] = None
    is_active: Optional[bool] = None
    total_score: Optional[float] = None
    error: Optional[str] = None

    @classmethod
    def from_entry(cls, entry: Optional[LeaderboardEntry]) -> "LeaderboardUpdate":
        if entry is None:
            return cls(ok=True)
        return cls(
            ok=True,
            entry_id=entry.id,
            is_active=entry.is_active,
            total_score=entry.total_score,
        )


# ---------------------------------------------------------------------------
# Entry access
# ---------------------------------------------------------------------------

def get_entry(db: Session, user_id: int) -> Optional[LeaderboardEntry]:
    return (
        db.query(LeaderboardEntry)
        .filter(LeaderboardEntry.user_id == user_id)
        .first()
    )


def ensure_entry(db: Session, user_id: int) -> LeaderboardEntry:
    """Return the user's entry, creating an active zero-score one if absent."""
    entry = get_entry(db, user_id)
    if entry is not None:
        return entry

    db.add(LeaderboardEntry(user_id=user_id, is_active=True))
    try:
        db.commit()
    except IntegrityError:
        # Race condition: a concurrent request created it first
        db.rollback()
    return get_entry(db, user_id)


# ---------------------------------------------------------------------------
# Guard for side-effect hooks
# ---------------------------------------------------------------------------

def _guarded(
    db: Session,
    action: str,
    user_id: int,
    fn: Callable[[], Optional[LeaderboardEntry]],
) -> LeaderboardUpdate:
    try:
        return LeaderboardUpdate.from_entry(fn())
    except Exception as exc:
        db.rollback()
        logger.exception(
            "Leaderboard update after %s failed for user_id=%s", action, user_id
        )
        return LeaderboardUpdate(ok=False, error=f"{type(exc).__name__}: {exc}")


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def on_user_registered(db: Session, user: User) -> LeaderboardEntry:
    return ensure_entry(db, user.id)


def _publish_transition(db: Session, author_id: int) -> Optional[LeaderboardEntry]:
    author = db.get(User, author_id)
    if author is not None and not author.is_active:
        # Deleted accounts stay off the leaderboard.
        return None
    entry = ensure_entry(db, author_id)
    if not entry.is_active:
        entry.is_active = True
        db.flush()
        logger.info("Reactivated leaderboard entry for user_id=%s", author_id)
    return recalculate_entry(db, entry)


def _withdraw_transition(db: Session, author_id: int) -> Optional[LeaderboardEntry]:
    entry = get_entry(db, author_id)
    if entry is None:
        return None
    entry = recalculate_entry(db, entry)
    # Counted after the story change was committed by the caller.
    if count_published_stories(db, author_id) == 0 and entry.is_active:
        entry.is_active = False
        db.commit()
        db.refresh(entry)
        logger.info(
            "Deactivated leaderboard entry for user_id=%s (no published stories)",
            author_id,
        )
    return entry


def on_story_published(db: Session, author_id: int) -> LeaderboardUpdate:
    return _guarded(db, "publish", author_id, lambda: _publish_transition(db, author_id))


def on_story_unpublished(db: Session, author_id: int) -> LeaderboardUpdate:
    return _guarded(db, "unpublish", author_id, lambda: _withdraw_transition(db, author_id))


def on_story_deleted(db: Session, author_id: int) -> LeaderboardUpdate:
    return _guarded(db, "delete", author_id, lambda: _withdraw_transition(db, author_id))


def on_user_deleted(db: Session, user_id: int) -> bool:
    """Delete the user's entry. Does not commit; returns whether one existed."""
    entry = get_entry(db, user_id)
    if entry is None:
        return False
    db.delete(entry)
    return True


# ---------------------------------------------------------------------------
# Batch maintenance
# ---------------------------------------------------------------------------

def deactivate_authors_without_published_stories(db: Session) -> int:
    """
    Mark every active entry whose user has no published story as inactive.
    Returns the number of entries deactivated.
    """
    authors_with_published = (
        select(Story.author_id)
        .where(Story.status == StoryStatus.published)
        .distinct()
    )
    updated = (
        db.query(LeaderboardEntry)
        .filter(
            LeaderboardEntry.is_active.is_(True),
            LeaderboardEntry.user_id.not_in(authors_with_published),
        )
        .update({LeaderboardEntry.is_active: False}, synchronize_session=False)
    )
    db.commit()
    logger.info("Leaderboard cleanup: %d entries deactivated", updated)
    return updated
