"""Pydantic schemas for request/response validation."""

from .achievements import (
    AchievementMetadataResponse,
    AchievementStatusResponse,
    MintRequest,
    MintResponse,
)
from .challenges import (
    DailyChallengeResponse,
    ParagraphDetailResponse,
    ParagraphStartRequest,
    ParagraphStartResponse,
    ParagraphSubmitRequest,
    ParagraphSubmitResponse,
)
from .common import ErrorResponse
from .game import SignGameRequest, SignGameResponse
from .leaderboard import LeaderboardEntryResponse, LeaderboardPageResponse, PlayerEntriesResponse

__all__ = [
    "AchievementMetadataResponse",
    "AchievementStatusResponse",
    "DailyChallengeResponse",
    "ErrorResponse",
    "LeaderboardEntryResponse",
    "LeaderboardPageResponse",
    "MintRequest",
    "MintResponse",
    "ParagraphDetailResponse",
    "ParagraphStartRequest",
    "ParagraphStartResponse",
    "ParagraphSubmitRequest",
    "ParagraphSubmitResponse",
    "PlayerEntriesResponse",
    "SignGameRequest",
    "SignGameResponse",
]
