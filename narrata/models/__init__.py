from .user import User
from .story import Story
from .leaderboard import LeaderboardEntry

__all__ = [
    "User",
    "Story",
    "LeaderboardEntry",
]
