# src/typerank/models/__init__.py
"""SQLAlchemy models for the TypeRank service."""

from .leaderboard import LeaderboardEntry
from .paragraph import ParagraphSession
from .sync_cursor import SyncCursor

__all__ = [
    "LeaderboardEntry",
    "ParagraphSession",
    "SyncCursor",
]
