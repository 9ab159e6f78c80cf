"""Version 1 API endpoints."""

from .endpoints import (
    achievements_router,
    challenges_router,
    game_router,
    leaderboard_router,
    system_router,
)

__all__ = [
    "achievements_router",
    "challenges_router",
    "game_router",
    "leaderboard_router",
    "system_router",
]
