"""
Leaderboard router.

GET  /leaderboard                                — paginated listing for a timeframe
GET  /leaderboard/stats                          — platform-wide rollup
GET  /leaderboard/top-writers                    — authors by live engagement
GET  /leaderboard/users/{user_id}                — one user's rank for a timeframe
POST /leaderboard/users/{user_id}/recalculate    — recompute one user's score
GET  /leaderboard/users/{user_id}/badges         — badges + achievements
POST /leaderboard/users/{user_id}/badges         — award a badge (admin)
POST /leaderboard/users/{user_id}/achievements   — unlock an achievement (admin)
POST /leaderboard/rankings/refresh               — run the ranking batch
POST /leaderboard/maintenance/deactivate-idle    — deactivate authors with no published stories
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from narrata.core.config import settings
from narrata.db.base import get_db
from narrata.models.leaderboard import LeaderboardEntry
from narrata.models.user import User
from narrata.schemas.common import ErrorResponse
from narrata.schemas.leaderboard import (
    AchievementAwardRequest,
    AchievementResponse,
    AwardResultResponse,
    AwardsResponse,
    BadgeAwardRequest,
    BadgeResponse,
    CleanupResponse,
    LeaderboardEntryResponse,
    LeaderboardPageResponse,
    LeaderboardStatsResponse,
    MetricsResponse,
    PaginationResponse,
    RankedEntryResponse,
    RankingRefreshResponse,
    RankSetResponse,
    TopWriterResponse,
    TopWritersResponse,
    UserRankResponse,
    UserSummary,
)
from narrata.services import leaderboard as service
from narrata.services.badges import Achievement, Badge, load_achievements, load_badges
from narrata.services.lifecycle import deactivate_authors_without_published_stories
from narrata.services.metrics import METRIC_FIELDS
from narrata.services.ranking import RankSet, Timeframe, read_ranks, update_rankings

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _rank_set(ranks: RankSet) -> RankSetResponse:
    return RankSetResponse(
        overall=ranks.overall,
        category=ranks.category,
        weekly=ranks.weekly,
        monthly=ranks.monthly,
    )


def _badge(b: Badge) -> BadgeResponse:
    return BadgeResponse(
        name=b.name, description=b.description, icon=b.icon, earned_at=b.earned_at.isoformat()
    )


def _achievement(a: Achievement) -> AchievementResponse:
    return AchievementResponse(
        type=a.type,
        description=a.description,
        unlocked_at=a.unlocked_at.isoformat(),
        value=a.value,
    )


def _entry_fields(entry: LeaderboardEntry, user: User) -> dict:
    ranks = read_ranks(entry)
    change = RankSet(**{
        tf: getattr(ranks.previous, tf) - getattr(ranks.current, tf)
        for tf in ("overall", "category", "weekly", "monthly")
    })
    return dict(
        id=entry.id,
        user=UserSummary.model_validate(user),
        total_score=entry.total_score,
        story_score=entry.story_score,
        engagement_score=entry.engagement_score,
        quality_score=entry.quality_score,
        weekly_score=entry.weekly_score,
        monthly_score=entry.monthly_score,
        metrics=MetricsResponse(**{name: getattr(entry, name) for name in METRIC_FIELDS}),
        current_rank=_rank_set(ranks.current),
        previous_rank=_rank_set(ranks.previous),
        rank_change=_rank_set(change),
        badges=[_badge(b) for b in load_badges(entry)],
        achievements=[_achievement(a) for a in load_achievements(entry)],
        is_active=entry.is_active,
        last_calculated_at=_iso(entry.last_calculated_at),
        last_activity_at=_iso(entry.last_activity_at),
    )


def _entry_to_response(entry: LeaderboardEntry, user: User) -> LeaderboardEntryResponse:
    return LeaderboardEntryResponse(**_entry_fields(entry, user))


def _ranked_to_response(ranked: service.RankedEntry) -> RankedEntryResponse:
    return RankedEntryResponse(rank=ranked.rank, **_entry_fields(ranked.entry, ranked.user))


# ---------------------------------------------------------------------------
# GET /leaderboard
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=LeaderboardPageResponse,
    summary="Leaderboard listing for a timeframe",
    responses={
        200: {"description": "Active entries sorted by the timeframe's score."},
        422: {"model": ErrorResponse, "description": "Unknown timeframe."},
    },
)
def list_leaderboard(
    timeframe: str = Query(
        default=Timeframe.overall.value,
        description='"overall", "weekly" or "monthly".',
        examples=["weekly"],
    ),
    page: int = Query(default=1, ge=1, description="1-based page number."),
    limit: int = Query(
        default=settings.LEADERBOARD_DEFAULT_PAGE_SIZE,
        ge=1,
        le=settings.LEADERBOARD_MAX_PAGE_SIZE,
        description="Page size.",
    ),
    db: Session = Depends(get_db),
):
    """
    Return one page of active entries, best first.

    `rank` is the position in this listing (ties broken by user id), so it
    is always current even between ranking passes. `current_rank` holds the
    ranks stored by the last ranking pass.
    """
    offset = (page - 1) * limit
    total, items = service.get_leaderboard(db, timeframe=timeframe, limit=limit, offset=offset)
    total_pages = math.ceil(total / limit) if total else 0
    return LeaderboardPageResponse(
        timeframe=timeframe,
        leaderboard=[_ranked_to_response(r) for r in items],
        pagination=PaginationResponse(
            current_page=page,
            total_pages=total_pages,
            total_entries=total,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        ),
    )


# ---------------------------------------------------------------------------
# GET /leaderboard/stats
# ---------------------------------------------------------------------------

@router.get(
    "/stats",
    response_model=LeaderboardStatsResponse,
    summary="Leaderboard-wide statistics",
)
def leaderboard_stats(db: Session = Depends(get_db)):
    """Active participants, published stories, total views, active users and the top scorer."""
    stats = service.get_leaderboard_stats(db)
    return LeaderboardStatsResponse(
        total_participants=stats.total_participants,
        total_stories=stats.total_stories,
        total_views=stats.total_views,
        total_users=stats.total_users,
        top_scorer=_ranked_to_response(stats.top_scorer) if stats.top_scorer else None,
    )


@router.get(
    "/top-writers",
    response_model=TopWritersResponse,
    summary="Top authors by engagement over a publish window",
    responses={422: {"model": ErrorResponse, "description": "Unknown timeframe."}},
)
def top_writers(
    timeframe: str = Query(
        default="overall",
        description='"overall", "weekly", "monthly" or "yearly".',
    ),
    category: Optional[str] = Query(
        default=None,
        description='Story category; "all" or an unknown name means no filter.',
    ),
    limit: int = Query(
        default=settings.LEADERBOARD_DEFAULT_PAGE_SIZE,
        description="Clamped to 1..LEADERBOARD_MAX_PAGE_SIZE.",
    ),
    db: Session = Depends(get_db),
):
    """
    Computed live from published stories, so it does not wait for a ranking
    pass and ignores stored leaderboard entries.
    """
    writers = service.get_top_writers(db, timeframe=timeframe, category=category, limit=limit)
    return TopWritersResponse(
        timeframe=timeframe,
        category=category,
        writers=[
            TopWriterResponse(
                rank=w.rank,
                user=UserSummary.model_validate(w.user),
                total_stories=w.total_stories,
                total_views=w.total_views,
                total_likes=w.total_likes,
                total_comments=w.total_comments,
                average_rating=w.average_rating,
                engagement_score=w.engagement_score,
                quality_score=w.quality_score,
            )
            for w in writers
        ],
    )

# ---------------------------------------------------------------------------
# Per-user endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/users/{user_id}",
    response_model=UserRankResponse,
    summary="One user's rank for a timeframe",
    responses={
        404: {"model": ErrorResponse, "description": "User missing/inactive or not on the leaderboard."},
        422: {"model": ErrorResponse, "description": "Unknown timeframe."},
    },
)
def user_rank(
    user_id: int,
    timeframe: str = Query(default=Timeframe.overall.value),
    db: Session = Depends(get_db),
):
    result = service.get_user_rank(db, user_id, timeframe)
    return UserRankResponse(
        timeframe=result.timeframe.value,
        rank=result.rank,
        previous_rank=result.previous_rank,
        rank_change=result.rank_change,
        entry=_entry_to_response(result.entry, result.user),
    )


@router.post(
    "/users/{user_id}/recalculate",
    response_model=LeaderboardEntryResponse,
    summary="Recalculate one user's score",
    responses={404: {"model": ErrorResponse, "description": "User missing or inactive."}},
)
def recalculate_user(user_id: int, db: Session = Depends(get_db)):
    """
    Recompute metrics and scores from the user's published stories.
    Creates the entry if it does not exist yet. Safe to repeat.
    Ranks are not touched; they change on the next ranking pass.
    """
    entry = service.recalculate_user_score(db, user_id)
    return _entry_to_response(entry, db.get(User, user_id))


@router.get(
    "/users/{user_id}/badges",
    response_model=AwardsResponse,
    summary="A user's badges and achievements",
)
def user_badges(user_id: int, db: Session = Depends(get_db)):
    badges, achievements = service.get_user_awards(db, user_id)
    return AwardsResponse(
        badges=[_badge(b) for b in badges],
        achievements=[_achievement(a) for a in achievements],
    )


@router.post(
    "/users/{user_id}/badges",
    response_model=AwardResultResponse,
    summary="Award a badge",
    responses={
        200: {"description": "Badge added, or already present (added=false)."},
        404: {"model": ErrorResponse, "description": "User missing or inactive."},
        422: {"model": ErrorResponse, "description": "Blank or oversized name/description."},
    },
)
def award_badge(user_id: int, payload: BadgeAwardRequest, db: Session = Depends(get_db)):
    """
    Append a badge unless one with the same name already exists.
    A duplicate name is a no-op: the existing badge is left untouched.
    """
    entry, added = service.award_badge(
        db, user_id, payload.name, payload.description, payload.icon
    )
    return AwardResultResponse(added=added, entry=_entry_to_response(entry, db.get(User, user_id)))


@router.post(
    "/users/{user_id}/achievements",
    response_model=AwardResultResponse,
    summary="Unlock an achievement",
)
def award_achievement(
    user_id: int, payload: AchievementAwardRequest, db: Session = Depends(get_db)
):
    entry, added = service.award_achievement(
        db, user_id, payload.type, payload.description, payload.value
    )
    return AwardResultResponse(added=added, entry=_entry_to_response(entry, db.get(User, user_id)))


# ---------------------------------------------------------------------------
# Batch operations
# ---------------------------------------------------------------------------

@router.post(
    "/rankings/refresh",
    response_model=RankingRefreshResponse,
    summary="Recompute stored ranks for every active entry",
    responses={
        500: {"model": ErrorResponse, "description": "RANKING_BATCH_FAILED; committed ranks are kept."},
    },
)
def refresh_rankings(db: Session = Depends(get_db)):
    result = update_rankings(db)
    return RankingRefreshResponse(
        entries_ranked=result.entries_ranked,
        leader_user_id=result.leader_user_id,
    )


@router.post(
    "/maintenance/deactivate-idle",
    response_model=CleanupResponse,
    summary="Deactivate entries of authors with no published stories",
)
def deactivate_idle(db: Session = Depends(get_db)):
    return CleanupResponse(deactivated=deactivate_authors_without_published_stories(db))
