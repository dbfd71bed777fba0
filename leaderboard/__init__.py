"""Leaderboard client, session adapter and local high-score store"""

from .client import (
    InvalidUsername,
    LeaderboardClient,
    LeaderboardError,
    LeaderboardStats,
    ScoreEntry,
    SubmitResult,
    UserBest,
    sanitize_username,
    validate_username,
)
from .adapter import LeaderboardAdapter
from .storage import HighScoreStore

__all__ = [
    "InvalidUsername",
    "LeaderboardClient",
    "LeaderboardError",
    "LeaderboardStats",
    "ScoreEntry",
    "SubmitResult",
    "UserBest",
    "sanitize_username",
    "validate_username",
    "LeaderboardAdapter",
    "HighScoreStore",
]
