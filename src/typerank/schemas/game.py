"""Schemas for signing completed game results."""

from pydantic import BaseModel, Field


class SignGameRequest(BaseModel):
    """Final statistics of a session the client wants to submit to the ledger."""

    player: str = Field(..., description="Player address (0x-prefixed, 20 bytes)")
    session_id: int = Field(..., ge=0)
    mode: str = Field(..., description="Mode key, e.g. 'time-limit'")
    words_typed: int = Field(..., ge=0)
    correct_words: int = Field(..., ge=0)
    mistakes: int = Field(..., ge=0)
    correct_characters: int = Field(..., ge=0)
    wpm: int = Field(..., ge=0)
    duration_seconds: int | None = Field(None, ge=0)
    time_limit: int | None = None


class SignGameResponse(BaseModel):
    success: bool = True
    player: str
    session_id: int
    score: float
    signature: str
