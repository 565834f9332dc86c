"""
Tests for the leaderboard entry lifecycle and the story transitions that
drive it.

Covers:
  - registration creates an active zero-score entry
  - first publish creates/scores the entry; re-publish reactivates it
  - withdrawing the last published story deactivates the entry
  - a failing rescore is reported, never raised, and the story change stands
  - deleting an account removes its entry and soft-deletes the user
  - the idle-author sweep
"""
from __future__ import annotations

import pytest

from narrata.core.errors import StoryNotFoundError, StoryStateError, UserNotFoundError
from narrata.models.leaderboard import LeaderboardEntry
from narrata.models.story import Story, StoryStatus
from narrata.models.user import User
from narrata.services import lifecycle
from narrata.services.lifecycle import (
    deactivate_authors_without_published_stories,
    ensure_entry,
    get_entry,
    on_story_unpublished,
)
from narrata.services.stories import (
    create_story,
    delete_story,
    delete_user,
    publish_story,
    register_user,
    unpublish_story,
)


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

class TestRegistration:

    def test_register_creates_zero_entry(self, db):
        user = register_user(db, "  Ada  ", "Ada L.")
        assert user.username == "ada"

        entry = get_entry(db, user.id)
        assert entry is not None
        assert entry.is_active is True
        assert entry.total_score == 0
        assert entry.rank_overall == 0
        assert entry.badges == "[]"

    def test_ensure_entry_is_idempotent(self, db, make_user):
        user = make_user()
        first = ensure_entry(db, user.id)
        second = ensure_entry(db, user.id)
        assert first.id == second.id
        assert db.query(LeaderboardEntry).filter_by(user_id=user.id).count() == 1

    def test_delete_user_soft_deletes_account(self, db):
        user = register_user(db, "grace")
        story_id = create_story(db, user.id, "Compilers", publish=True).story_id
        user_id = user.id

        delete_user(db, user_id)
        assert get_entry(db, user_id) is None

        db.expire_all()
        stored = db.get(User, user_id)
        assert stored.is_active is False
        assert stored.username.startswith("deleted_")
        assert stored.username.endswith("_grace")
        assert db.get(Story, story_id) is not None

    def test_deleted_username_can_register_again(self, db):
        first = register_user(db, "grace")
        delete_user(db, first.id)
        second = register_user(db, "grace")
        assert second.id != first.id
        assert get_entry(db, second.id) is not None

    def test_delete_user_twice_raises(self, db):
        user = register_user(db, "linus")
        delete_user(db, user.id)
        with pytest.raises(UserNotFoundError):
            delete_user(db, user.id)

    def test_deleted_author_publish_creates_no_entry(self, db):
        user = register_user(db, "ken")
        story_id = create_story(db, user.id, "Unix").story_id
        delete_user(db, user.id)

        result = publish_story(db, story_id)
        assert result.leaderboard.ok is True
        assert result.leaderboard.entry_id is None
        assert get_entry(db, user.id) is None


# ---------------------------------------------------------------------------
# Story transitions
# ---------------------------------------------------------------------------

class TestPublish:

    def test_first_publish_creates_and_scores_entry(self, db, make_user):
        user = make_user(follower_count=4)
        result = create_story(db, user.id, "Hello", publish=True)

        assert result.leaderboard.ok is True
        entry = get_entry(db, user.id)
        assert entry is not None
        assert entry.is_active is True
        assert entry.published_stories == 1
        # story 10*0.3 + followers 4*0.5
        assert entry.total_score == pytest.approx(5)
        assert result.leaderboard.total_score == pytest.approx(5)

    def test_draft_does_not_touch_leaderboard(self, db, make_user):
        user = make_user()
        result = create_story(db, user.id, "Draft")
        assert result.leaderboard is None
        assert get_entry(db, user.id) is None
        assert user.total_stories == 1

    def test_publish_twice_conflicts(self, db, make_user):
        user = make_user()
        story_id = create_story(db, user.id, "Once", publish=True).story_id
        with pytest.raises(StoryStateError):
            publish_story(db, story_id)

    def test_publish_missing_story(self, db):
        with pytest.raises(StoryNotFoundError):
            publish_story(db, 123456)

    def test_republish_reactivates(self, db, make_user):
        user = make_user()
        story_id = create_story(db, user.id, "Back", publish=True).story_id
        unpublish_story(db, story_id)
        assert get_entry(db, user.id).is_active is False

        result = publish_story(db, story_id)
        assert result.leaderboard.ok is True
        assert result.leaderboard.is_active is True
        assert get_entry(db, user.id).is_active is True


class TestWithdraw:

    def test_unpublish_only_story_deactivates(self, db, make_user):
        user = make_user()
        story_id = create_story(db, user.id, "Solo", publish=True).story_id

        result = unpublish_story(db, story_id)
        assert result.story.status == StoryStatus.draft
        assert result.story.published_at is None
        assert result.leaderboard.is_active is False

        entry = get_entry(db, user.id)
        assert entry.published_stories == 0
        assert entry.total_score == 0

    def test_unpublish_one_of_two_keeps_active(self, db, make_user):
        user = make_user()
        keep = create_story(db, user.id, "Keep", publish=True).story_id
        drop = create_story(db, user.id, "Drop", publish=True).story_id

        unpublish_story(db, drop)
        entry = get_entry(db, user.id)
        assert entry.is_active is True
        assert entry.published_stories == 1
        assert db.get(Story, keep).status == StoryStatus.published

    def test_unpublish_draft_conflicts(self, db, make_user):
        user = make_user()
        story_id = create_story(db, user.id, "Draft").story_id
        with pytest.raises(StoryStateError):
            unpublish_story(db, story_id)

    def test_delete_last_story_deactivates(self, db, make_user):
        user = make_user()
        story_id = create_story(db, user.id, "Gone", publish=True).story_id

        result = delete_story(db, story_id)
        assert result.story is None
        assert result.leaderboard.is_active is False
        assert db.get(Story, story_id) is None
        assert db.get(type(user), user.id).total_stories == 0

    def test_withdraw_without_entry_is_ok(self, db, make_user):
        user = make_user()
        update = on_story_unpublished(db, user.id)
        assert update.ok is True
        assert update.entry_id is None


class TestHookFailures:

    def test_failed_rescore_is_reported_not_raised(self, db, make_user, monkeypatch):
        user = make_user()
        story_id = create_story(db, user.id, "Pending").story_id

        def boom(*args, **kwargs):
            raise RuntimeError("scoring unavailable")

        monkeypatch.setattr(lifecycle, "recalculate_entry", boom)

        result = publish_story(db, story_id)
        assert result.leaderboard.ok is False
        assert "RuntimeError" in result.leaderboard.error

        db.expire_all()
        assert db.get(Story, story_id).status == StoryStatus.published


# ---------------------------------------------------------------------------
# Batch maintenance
# ---------------------------------------------------------------------------

class TestIdleSweep:

    def test_deactivates_only_authors_without_published(self, db, make_user, make_story):
        busy = make_user(with_entry=True)
        idle = make_user(with_entry=True)
        make_story(busy)
        make_story(idle, status=StoryStatus.draft)

        assert deactivate_authors_without_published_stories(db) == 1

        db.expire_all()
        assert get_entry(db, busy.id).is_active is True
        assert get_entry(db, idle.id).is_active is False

    def test_second_sweep_is_noop(self, db, make_user):
        make_user(with_entry=True)
        assert deactivate_authors_without_published_stories(db) == 1
        assert deactivate_authors_without_published_stories(db) == 0
