"""
Shared pytest fixtures.

Uses a file-backed SQLite database so no Postgres is required for tests.
Tables are rebuilt for every test: rankings span all active entries, so
nothing may leak between tests.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_narrata.db")

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from narrata.db.base import Base, get_db
from narrata.main import app
from narrata.models import LeaderboardEntry, Story, User
from narrata.models.story import StoryStatus

SQLITE_URL = "sqlite:///./test_narrata.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db(tables):
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

@pytest.fixture()
def make_user(db):
    counter = {"n": 0}

    def _make(username=None, follower_count=0, is_active=True, with_entry=False):
        counter["n"] += 1
        user = User(
            username=username or f"writer{counter['n']}",
            follower_count=follower_count,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        if with_entry:
            db.add(LeaderboardEntry(user_id=user.id, is_active=True))
            db.commit()
        return user

    return _make


@pytest.fixture()
def make_story(db):
    def _make(
        author,
        views=0,
        likes=0,
        comments=0,
        shares=0,
        dislikes=0,
        featured=False,
        status=StoryStatus.published,
        published_at=None,
        title="A story",
        category="Fiction",
    ):
        if published_at is None and status == StoryStatus.published:
            published_at = datetime.now(tz=timezone.utc)
        story = Story(
            author_id=author.id,
            title=title,
            category=category,
            status=status,
            views=views,
            likes=likes,
            comments=comments,
            shares=shares,
            dislikes=dislikes,
            featured=featured,
            published_at=published_at,
        )
        db.add(story)
        db.commit()
        return story

    return _make


@pytest.fixture()
def make_entry(db, make_user):
    """Active entry with explicit scores, bypassing recalculation."""
    def _make(total=0.0, weekly=0.0, monthly=0.0, is_active=True, user=None):
        user = user or make_user()
        entry = LeaderboardEntry(
            user_id=user.id,
            total_score=total,
            weekly_score=weekly,
            monthly_score=monthly,
            is_active=is_active,
        )
        db.add(entry)
        db.commit()
        return entry

    return _make


@pytest.fixture()
def session_factory():
    """Independent sessions, for reading back what another session committed."""
    return TestingSessionLocal
