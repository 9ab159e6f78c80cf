"""Leaderboard-related Pydantic schemas."""

from pydantic import BaseModel, ConfigDict, Field


class LeaderboardEntryResponse(BaseModel):
    """One ranked entry as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    player_address: str
    mode: int
    words_typed: int
    correct_words: int
    mistakes: int
    correct_characters: int
    accuracy_basis_points: int
    accuracy_percent: float
    words_per_minute: int
    score: float
    duration_seconds: int
    timestamp: int


class LeaderboardPageResponse(BaseModel):
    success: bool = True
    period: str
    mode: str | None = Field(None, description="Mode key, absent for the global board")
    total: int = Field(..., description="Distinct players matching the filter")
    limit: int
    offset: int
    entries: list[LeaderboardEntryResponse]


class PlayerEntriesResponse(BaseModel):
    success: bool = True
    player_address: str
    entries: list[LeaderboardEntryResponse]
