"""API endpoint modules for version 1."""

from .achievements import router as achievements_router
from .challenges import router as challenges_router
from .game import router as game_router
from .leaderboard import router as leaderboard_router
from .system import router as system_router

__all__ = [
    "achievements_router",
    "challenges_router",
    "game_router",
    "leaderboard_router",
    "system_router",
]
