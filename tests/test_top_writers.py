"""
Tests for the live top-writers query.

Covers:
  - ordering by engagement (views * 0.1 + likes * 2 + comments * 3)
  - category filter; "all" and unknown names do not filter
  - weekly / monthly / yearly publish windows
  - drafts and deactivated accounts excluded
  - limit clamping and timeframe validation
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from narrata.core.errors import InvalidTimeframeError
from narrata.models.story import StoryStatus
from narrata.services.leaderboard import get_top_writers

_NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


def _ago(days: float) -> datetime:
    return _NOW - timedelta(days=days)


class TestTopWriters:

    def test_sorted_by_engagement(self, db, make_user, make_story):
        liked = make_user()
        make_story(liked, views=100, likes=10, published_at=_ago(1))      # 30
        discussed = make_user()
        make_story(discussed, comments=20, published_at=_ago(1))          # 60

        writers = get_top_writers(db, now=_NOW)
        assert [w.user.id for w in writers] == [discussed.id, liked.id]
        assert [w.rank for w in writers] == [1, 2]
        assert writers[0].engagement_score == pytest.approx(60)
        assert writers[1].engagement_score == pytest.approx(30)

    def test_aggregates_per_author(self, db, make_user, make_story):
        author = make_user()
        make_story(author, views=20, likes=3, dislikes=1, comments=1, published_at=_ago(1))
        make_story(author, views=10, published_at=_ago(2))

        (writer,) = get_top_writers(db, now=_NOW)
        assert writer.total_stories == 2
        assert writer.total_views == 30
        assert writer.total_likes == 3
        assert writer.total_comments == 1
        assert writer.quality_score == pytest.approx(0.1)
        # 3.75 and 0 (no votes)
        assert writer.average_rating == pytest.approx(1.875)

    def test_category_filter(self, db, make_user, make_story):
        novelist = make_user()
        make_story(novelist, views=10000, category="Fiction", published_at=_ago(1))
        make_story(novelist, views=10, category="Horror", published_at=_ago(1))
        horror_only = make_user()
        make_story(horror_only, views=500, category="Horror", published_at=_ago(1))

        writers = get_top_writers(db, category="Horror", now=_NOW)
        assert [w.user.id for w in writers] == [horror_only.id, novelist.id]
        assert writers[1].total_views == 10

    @pytest.mark.parametrize("category", ["all", "Cookbooks", None])
    def test_all_or_unknown_category_does_not_filter(self, db, make_user, make_story, category):
        author = make_user()
        make_story(author, views=10, category="Fiction", published_at=_ago(1))
        make_story(author, views=20, category="Drama", published_at=_ago(1))

        (writer,) = get_top_writers(db, category=category, now=_NOW)
        assert writer.total_views == 30

    @pytest.mark.parametrize("timeframe,expected_views", [
        ("weekly", 1),
        ("monthly", 11),
        ("yearly", 111),
        ("overall", 1111),
    ])
    def test_publish_window(self, db, make_user, make_story, timeframe, expected_views):
        author = make_user()
        make_story(author, views=1, published_at=_ago(3))
        make_story(author, views=10, published_at=_ago(20))
        make_story(author, views=100, published_at=_ago(200))
        make_story(author, views=1000, published_at=_ago(400))

        (writer,) = get_top_writers(db, timeframe=timeframe, now=_NOW)
        assert writer.total_views == expected_views

    def test_author_without_stories_in_window_absent(self, db, make_user, make_story):
        make_story(make_user(), views=50, published_at=_ago(10))
        assert get_top_writers(db, timeframe="weekly", now=_NOW) == []

    def test_drafts_and_inactive_users_excluded(self, db, make_user, make_story):
        drafter = make_user()
        make_story(drafter, views=999, status=StoryStatus.draft)
        gone = make_user(is_active=False)
        make_story(gone, views=999, published_at=_ago(1))
        assert get_top_writers(db, now=_NOW) == []

    @pytest.mark.parametrize("limit,expected", [(0, 1), (1, 1), (500, 3)])
    def test_limit_clamped(self, db, make_user, make_story, limit, expected):
        for views in (10, 20, 30):
            make_story(make_user(), views=views, published_at=_ago(1))
        assert len(get_top_writers(db, limit=limit, now=_NOW)) == expected

    def test_unknown_timeframe_rejected(self, db):
        with pytest.raises(InvalidTimeframeError) as exc_info:
            get_top_writers(db, timeframe="daily", now=_NOW)
        assert "yearly" in exc_info.value.details["allowed"]


class TestTopWritersEndpoint:

    def test_weekly_category_listing(self, client, make_user, make_story):
        now = datetime.now(tz=timezone.utc)
        recent = make_user(username="recent")
        make_story(recent, views=40, category="Horror", published_at=now - timedelta(days=1))
        make_story(recent, views=4000, category="Fiction", published_at=now - timedelta(days=1))
        stale = make_user(username="stale")
        make_story(stale, views=9000, category="Horror", published_at=now - timedelta(days=12))

        resp = client.get(
            "/leaderboard/top-writers",
            params={"timeframe": "weekly", "category": "Horror"},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["timeframe"] == "weekly"
        assert body["category"] == "Horror"
        assert [w["user"]["username"] for w in body["writers"]] == ["recent"]
        assert body["writers"][0]["total_views"] == 40
        assert body["writers"][0]["rank"] == 1

    def test_invalid_timeframe(self, client):
        resp = client.get("/leaderboard/top-writers", params={"timeframe": "daily"})
        assert resp.status_code == 422
        assert resp.json()["code"] == "INVALID_TIMEFRAME"
