"""
Story transition schemas.

POST   /stories/{story_id}/publish    → StoryTransitionResponse
POST   /stories/{story_id}/unpublish  → StoryTransitionResponse
DELETE /stories/{story_id}            → StoryTransitionResponse
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class StoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    author_id: int
    title: str
    category: str
    status: str
    views: int
    likes: int
    comments: int
    shares: int
    featured: bool
    published_at: Optional[str] = None


class LeaderboardUpdateOut(BaseModel):
    ok: bool
    entry_id: Optional[int] = None
    is_active: Optional[bool] = None
    total_score: Optional[float] = None
    error: Optional[str] = Field(
        default=None,
        description="Set when the leaderboard side effect failed; the story change still succeeded.",
    )


class StoryTransitionResponse(BaseModel):
    story_id: int
    story: Optional[StoryOut] = Field(default=None, description="Null after deletion.")
    leaderboard: Optional[LeaderboardUpdateOut] = None
