"""
Leaderboard schemas.

GET  /leaderboard                                → LeaderboardPageResponse
GET  /leaderboard/stats                          → LeaderboardStatsResponse
GET  /leaderboard/top-writers                    → TopWritersResponse
GET  /leaderboard/users/{user_id}                → UserRankResponse
POST /leaderboard/users/{user_id}/recalculate    → LeaderboardEntryResponse
GET  /leaderboard/users/{user_id}/badges         → AwardsResponse
POST /leaderboard/users/{user_id}/badges         → AwardResultResponse
POST /leaderboard/users/{user_id}/achievements   → AwardResultResponse
POST /leaderboard/rankings/refresh               → RankingRefreshResponse
POST /leaderboard/maintenance/deactivate-idle    → CleanupResponse
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    full_name: Optional[str] = None
    follower_count: int = 0


class MetricsResponse(BaseModel):
    """Snapshot of the author's published stories at the last recalculation."""
    model_config = ConfigDict(from_attributes=True)

    total_stories: int
    published_stories: int
    total_views: int
    total_likes: int
    total_comments: int
    total_shares: int
    average_rating: float
    follower_count: int
    average_views_per_story: float
    average_likes_per_story: float
    average_comments_per_story: float
    featured_stories: int
    likes_to_views_ratio: float
    comments_to_views_ratio: float


class RankSetResponse(BaseModel):
    overall: int = Field(description="1-based; 0 = unranked.")
    category: int
    weekly: int
    monthly: int


class BadgeResponse(BaseModel):
    name: str
    description: str
    icon: str
    earned_at: str


class AchievementResponse(BaseModel):
    type: str
    description: str
    unlocked_at: str
    value: Optional[float] = None


class LeaderboardEntryResponse(BaseModel):
    id: int
    user: UserSummary
    total_score: float
    story_score: float
    engagement_score: float
    quality_score: float
    weekly_score: float
    monthly_score: float
    metrics: MetricsResponse
    current_rank: RankSetResponse
    previous_rank: RankSetResponse
    rank_change: RankSetResponse = Field(
        description="previous − current per timeframe; positive means the user climbed."
    )
    badges: list[BadgeResponse]
    achievements: list[AchievementResponse]
    is_active: bool
    last_calculated_at: Optional[str] = None
    last_activity_at: Optional[str] = None


class RankedEntryResponse(LeaderboardEntryResponse):
    rank: int = Field(description="1-based position in this listing.")


class PaginationResponse(BaseModel):
    current_page: int
    total_pages: int
    total_entries: int
    has_next_page: bool
    has_prev_page: bool


class LeaderboardPageResponse(BaseModel):
    timeframe: str
    leaderboard: list[RankedEntryResponse]
    pagination: PaginationResponse


class UserRankResponse(BaseModel):
    timeframe: str
    rank: int = Field(description="Rank from the last ranking pass; 0 = unranked.")
    previous_rank: int
    rank_change: int
    entry: LeaderboardEntryResponse


class LeaderboardStatsResponse(BaseModel):
    total_participants: int
    total_stories: int = Field(description="Published stories across the platform.")
    total_views: int
    total_users: int
    top_scorer: Optional[RankedEntryResponse] = None


class TopWriterResponse(BaseModel):
    rank: int
    user: UserSummary
    total_stories: int
    total_views: int
    total_likes: int
    total_comments: int
    average_rating: float
    engagement_score: float = Field(description="sum(views * 0.1 + likes * 2 + comments * 3).")
    quality_score: float = Field(description="Likes per view; 0 without views.")


class TopWritersResponse(BaseModel):
    timeframe: str
    category: Optional[str] = None
    writers: list[TopWriterResponse]


class AwardsResponse(BaseModel):
    badges: list[BadgeResponse]
    achievements: list[AchievementResponse]


class BadgeAwardRequest(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    description: str = Field(min_length=1, max_length=256)
    icon: Optional[str] = Field(default=None, max_length=16)


class AchievementAwardRequest(BaseModel):
    type: str = Field(min_length=1, max_length=64)
    description: str = Field(min_length=1, max_length=256)
    value: Optional[float] = None


class AwardResultResponse(BaseModel):
    added: bool = Field(description="False when the key already existed (no-op).")
    entry: LeaderboardEntryResponse


class RankingRefreshResponse(BaseModel):
    entries_ranked: int
    leader_user_id: Optional[int] = None


class CleanupResponse(BaseModel):
    deactivated: int
