"""
LeaderboardEntry — one derived scoring row per user.

Every score and metrics column is overwritten wholesale by a recalculation;
nothing here is patched incrementally. Rank columns are only written by the
ranking batch job.

badges / achievements: JSON-encoded Text holding an ordered list. The keyed
view (name → badge, type → achievement) lives in app code, see
narrata/services/badges.py.
"""
from datetime import datetime
from sqlalchemy import Integer, Float, Boolean, Text, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column

from narrata.db.base import Base


class LeaderboardEntry(Base):
    __tablename__ = "leaderboard_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    # Scores
    total_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, index=True)
    story_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    engagement_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    quality_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    weekly_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, index=True)
    monthly_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, index=True)

    # Metrics snapshot (published stories only)
    total_stories: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    published_stories: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_likes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_comments: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_shares: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    follower_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_views_per_story: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    average_likes_per_story: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    average_comments_per_story: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    featured_stories: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    likes_to_views_ratio: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    comments_to_views_ratio: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # Ranks: 1-based, 0 = unranked
    rank_overall: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    rank_category: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rank_weekly: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rank_monthly: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    previous_rank_overall: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    previous_rank_category: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    previous_rank_weekly: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    previous_rank_monthly: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    badges: Mapped[str] = mapped_column(
        Text, nullable=False, default="[]",
        comment="JSON array of {name, description, icon, earned_at}",
    )
    achievements: Mapped[str] = mapped_column(
        Text, nullable=False, default="[]",
        comment="JSON array of {type, description, unlocked_at, value}",
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    last_calculated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    last_activity_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
