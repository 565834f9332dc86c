"""add leaderboard_entries table

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-02

One row per user (unique user_id), deleted with the user.
Scores and metrics are overwritten by each recalculation; rank columns
are written by the ranking batch job only.
"""
from alembic import op
import sqlalchemy as sa

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None

_FLOAT_COLUMNS = [
    "total_score", "story_score", "engagement_score", "quality_score",
    "weekly_score", "monthly_score",
    "average_rating",
    "average_views_per_story", "average_likes_per_story", "average_comments_per_story",
    "likes_to_views_ratio", "comments_to_views_ratio",
]

_INT_COLUMNS = [
    "total_stories", "published_stories",
    "total_views", "total_likes", "total_comments", "total_shares",
    "follower_count", "featured_stories",
    "rank_overall", "rank_category", "rank_weekly", "rank_monthly",
    "previous_rank_overall", "previous_rank_category",
    "previous_rank_weekly", "previous_rank_monthly",
]


def upgrade() -> None:
    op.create_table(
        "leaderboard_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        *[sa.Column(name, sa.Float(), nullable=False, server_default="0") for name in _FLOAT_COLUMNS],
        *[sa.Column(name, sa.Integer(), nullable=False, server_default="0") for name in _INT_COLUMNS],
        sa.Column("badges", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("achievements", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_calculated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_activity_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_leaderboard_entries_user_id", "leaderboard_entries", ["user_id"], unique=True)
    op.create_index("ix_leaderboard_entries_total_score", "leaderboard_entries", ["total_score"])
    op.create_index("ix_leaderboard_entries_weekly_score", "leaderboard_entries", ["weekly_score"])
    op.create_index("ix_leaderboard_entries_monthly_score", "leaderboard_entries", ["monthly_score"])
    op.create_index("ix_leaderboard_entries_rank_overall", "leaderboard_entries", ["rank_overall"])
    op.create_index("ix_leaderboard_entries_is_active", "leaderboard_entries", ["is_active"])
    op.create_index(
        "ix_leaderboard_entries_last_calculated_at", "leaderboard_entries", ["last_calculated_at"]
    )


def downgrade() -> None:
    op.drop_index("ix_leaderboard_entries_last_calculated_at", table_name="leaderboard_entries")
    op.drop_index("ix_leaderboard_entries_is_active", table_name="leaderboard_entries")
    op.drop_index("ix_leaderboard_entries_rank_overall", table_name="leaderboard_entries")
    op.drop_index("ix_leaderboard_entries_monthly_score", table_name="leaderboard_entries")
    op.drop_index("ix_leaderboard_entries_weekly_score", table_name="leaderboard_entries")
    op.drop_index("ix_leaderboard_entries_total_score", table_name="leaderboard_entries")
    op.drop_index("ix_leaderboard_entries_user_id", table_name="leaderboard_entries")
    op.drop_table("leaderboard_entries")
