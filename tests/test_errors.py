"""
Tests for the exception hierarchy and the error envelope.
"""
from narrata.core.errors import (
    BadgeValidationError,
    InvalidTimeframeError,
    LeaderboardEntryNotFoundError,
    NarrataException,
    RankingBatchError,
    StoryStateError,
    UserNotFoundError,
)


class TestExceptionClasses:

    def test_user_not_found(self):
        exc = UserNotFoundError(7)
        assert exc.http_status == 404
        assert exc.to_dict() == {
            "code": "USER_NOT_FOUND",
            "message": "User 7 not found.",
            "details": {"user_id": 7},
        }

    def test_entry_not_found(self):
        exc = LeaderboardEntryNotFoundError(7)
        assert exc.http_status == 404
        assert exc.code == "LEADERBOARD_ENTRY_NOT_FOUND"

    def test_story_state_conflict(self):
        exc = StoryStateError(3, "draft", "Story is not published.")
        assert exc.http_status == 409
        assert exc.details == {"story_id": 3, "status": "draft"}

    def test_invalid_timeframe_lists_allowed(self):
        exc = InvalidTimeframeError("daily", ["overall", "weekly", "monthly"])
        assert exc.http_status == 422
        assert exc.details["allowed"] == ["overall", "weekly", "monthly"]
        assert "daily" in exc.message

    def test_badge_validation_names_field(self):
        exc = BadgeValidationError("name must not be empty.", field="name")
        assert exc.code == "BADGE_VALIDATION_ERROR"
        assert exc.details == {"field": "name"}

    def test_ranking_batch_counts(self):
        exc = RankingBatchError(2, 5, "disk I/O error")
        assert exc.committed == 2
        assert exc.total == 5
        assert exc.http_status == 500
        assert "disk I/O error" in exc.message

    def test_details_omitted_when_empty(self):
        assert NarrataException("oops").to_dict() == {
            "code": "INTERNAL_ERROR",
            "message": "oops",
        }

    def test_all_subclass_base(self):
        for cls in (UserNotFoundError, StoryStateError, RankingBatchError):
            assert issubclass(cls, NarrataException)


class TestEnvelope:

    def test_request_validation_envelope(self, client):
        resp = client.get("/leaderboard", params={"page": 0})
        assert resp.status_code == 422
        body = resp.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"]["errors"][0]["field"] == "query.page"

    def test_domain_error_envelope(self, client):
        resp = client.post("/stories/4242/publish")
        assert resp.status_code == 404
        assert resp.json()["code"] == "STORY_NOT_FOUND"
