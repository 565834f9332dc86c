"""
Story transition router.

POST   /stories/{story_id}/publish
POST   /stories/{story_id}/unpublish
DELETE /stories/{story_id}

Every response carries the leaderboard side-effect outcome. A failed
leaderboard update is reported in `leaderboard.error`; the story change
itself has already been committed and the status code stays 200.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from narrata.db.base import get_db
from narrata.models.story import Story
from narrata.schemas.common import ErrorResponse
from narrata.schemas.story import LeaderboardUpdateOut, StoryOut, StoryTransitionResponse
from narrata.services.lifecycle import LeaderboardUpdate
from narrata.services.stories import (
    StoryTransition,
    delete_story,
    publish_story,
    unpublish_story,
)

router = APIRouter(prefix="/stories", tags=["stories"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _ev(v) -> str:
    """Extract bare string value from a str-enum or plain str."""
    return v.value if hasattr(v, "value") else str(v)


def _story_out(story: Optional[Story]) -> Optional[StoryOut]:
    if story is None:
        return None
    return StoryOut(
        id=story.id,
        author_id=story.author_id,
        title=story.title,
        category=story.category,
        status=_ev(story.status),
        views=story.views,
        likes=story.likes,
        comments=story.comments,
        shares=story.shares,
        featured=story.featured,
        published_at=story.published_at.isoformat() if story.published_at else None,
    )


def _update_out(update: Optional[LeaderboardUpdate]) -> Optional[LeaderboardUpdateOut]:
    if update is None:
        return None
    return LeaderboardUpdateOut(
        ok=update.ok,
        entry_id=update.entry_id,
        is_active=update.is_active,
        total_score=update.total_score,
        error=update.error,
    )


def _to_response(t: StoryTransition) -> StoryTransitionResponse:
    return StoryTransitionResponse(
        story_id=t.story_id,
        story=_story_out(t.story),
        leaderboard=_update_out(t.leaderboard),
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

_RESPONSES = {
    404: {"model": ErrorResponse, "description": "Story not found."},
    409: {"model": ErrorResponse, "description": "Story is not in a state that allows this transition."},
}


@router.post(
    "/{story_id}/publish",
    response_model=StoryTransitionResponse,
    summary="Publish a draft story",
    responses=_RESPONSES,
)
def publish(story_id: int, db: Session = Depends(get_db)):
    """Publish, then ensure/reactivate the author's entry and rescore it."""
    return _to_response(publish_story(db, story_id))


@router.post(
    "/{story_id}/unpublish",
    response_model=StoryTransitionResponse,
    summary="Return a published story to draft",
    responses=_RESPONSES,
)
def unpublish(story_id: int, db: Session = Depends(get_db)):
    """Unpublish, rescore, and deactivate the entry if nothing published remains."""
    return _to_response(unpublish_story(db, story_id))


@router.delete(
    "/{story_id}",
    response_model=StoryTransitionResponse,
    summary="Delete a story",
    responses={404: {"model": ErrorResponse, "description": "Story not found."}},
)
def delete(story_id: int, db: Session = Depends(get_db)):
    return _to_response(delete_story(db, story_id))
