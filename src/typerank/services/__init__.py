"""Business logic services for the TypeRank service."""

from .achievements import AchievementService
from .ingestion import LeaderboardIngestor
from .leaderboard import LeaderboardQueryService
from .signing import SigningAuthority

__all__ = [
    "AchievementService",
    "LeaderboardIngestor",
    "LeaderboardQueryService",
    "SigningAuthority",
]
