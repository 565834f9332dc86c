"""
Tests for the batch job entry points.
"""
from __future__ import annotations

from sqlalchemy.exc import OperationalError

from narrata.jobs import cleanup, rankings
from narrata.models.leaderboard import LeaderboardEntry
from narrata.services import ranking


class TestRankingJob:

    def test_run_ranks_active_entries(self, make_entry, session_factory):
        top = make_entry(total=90)
        make_entry(total=10)
        make_entry(total=500, is_active=False)
        top_id, top_user = top.id, top.user_id

        result = rankings.run(session_factory)
        assert result.ok is True
        assert result.entries_ranked == 2
        assert result.leader_user_id == top_user

        with session_factory() as s:
            assert s.get(LeaderboardEntry, top_id).rank_overall == 1

    def test_failure_reported(self, make_entry, session_factory, monkeypatch):
        make_entry(total=1)

        def broken(entry, pair):
            raise OperationalError("UPDATE", {}, Exception("locked"))

        monkeypatch.setattr(ranking, "write_ranks", broken)

        result = rankings.run(session_factory)
        assert result.ok is False
        assert result.entries_ranked == 0
        assert "locked" in result.error


class TestCleanupJob:

    def test_run_returns_count(self, make_user, session_factory):
        make_user(with_entry=True)
        make_user(with_entry=True)
        assert cleanup.run(session_factory) == 2
        assert cleanup.run(session_factory) == 0
