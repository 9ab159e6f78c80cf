"""Schemas for the daily challenge and paragraph sessions."""

from pydantic import BaseModel, ConfigDict, Field


class DailyScore(BaseModel):
    address: str
    wpm: int
    accuracy: float


class DailyChallengeResponse(BaseModel):
    success: bool = True
    date: str
    text: str
    words: list[str]
    word_count: int
    time_limit: int
    difficulty: str
    text_hash: str
    leaderboard: list[DailyScore]


class ParagraphStartRequest(BaseModel):
    time_limit: int | None = Field(None, description="Seconds; one of 15, 30, 45, 60, 120, 180")
    player_address: str | None = None


class ParagraphStartResponse(BaseModel):
    success: bool = True
    session_id: str
    paragraph_text: str
    paragraph_hash: str
    time_limit: int | None


class ParagraphSubmitRequest(BaseModel):
    session_id: str
    typed_text: str = ""


class TypingMetricsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    words_typed: int
    correct_words: int
    mistakes: int
    accuracy: float
    total_characters: int
    correct_characters: int


class ParagraphSubmitResponse(BaseModel):
    success: bool = True
    metrics: TypingMetricsResponse
    original_paragraph: str


class ParagraphDetailResponse(BaseModel):
    success: bool = True
    paragraph_text: str
    paragraph_hash: str
    time_limit: int | None
    completed: bool
