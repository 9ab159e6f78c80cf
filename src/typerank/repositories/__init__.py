"""Data access layer."""

from .leaderboard_repo import LeaderboardRepository

__all__ = ["LeaderboardRepository"]
