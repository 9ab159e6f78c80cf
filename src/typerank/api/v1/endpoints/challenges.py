"""Daily challenge and paragraph-mode endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from typerank.api.v1.dependencies import LeaderboardServiceDep, SessionDep
from typerank.schemas.challenges import (
    DailyChallengeResponse,
    DailyScore,
    ParagraphDetailResponse,
    ParagraphStartRequest,
    ParagraphStartResponse,
    ParagraphSubmitRequest,
    ParagraphSubmitResponse,
    TypingMetricsResponse,
)
from typerank.services.challenges import ParagraphService, get_daily_challenge
from typerank.utils.address import normalize_address

router = APIRouter(tags=["challenges"])


@router.get("/daily-challenge", response_model=DailyChallengeResponse)
async def daily_challenge(service: LeaderboardServiceDep) -> DailyChallengeResponse:
    """Today's text plus today's top daily-challenge results."""
    challenge = get_daily_challenge(service)
    return DailyChallengeResponse(
        date=challenge.date,
        text=challenge.text,
        words=challenge.words,
        word_count=challenge.word_count,
        time_limit=challenge.time_limit,
        difficulty=challenge.difficulty,
        text_hash=challenge.text_hash,
        leaderboard=[
            DailyScore(
                address=entry.player_address,
                wpm=entry.words_per_minute,
                accuracy=entry.accuracy_percent,
            )
            for entry in challenge.leaderboard
        ],
    )


@router.post("/paragraph/start", response_model=ParagraphStartResponse)
async def start_paragraph(payload: ParagraphStartRequest, db: SessionDep) -> ParagraphStartResponse:
    player = normalize_address(payload.player_address) if payload.player_address else None
    session = ParagraphService(db).start(payload.time_limit, player)
    return ParagraphStartResponse(
        session_id=session.id,
        paragraph_text=session.paragraph_text,
        paragraph_hash=session.paragraph_hash,
        time_limit=session.time_limit,
    )


@router.post("/paragraph/submit", response_model=ParagraphSubmitResponse)
async def submit_paragraph(payload: ParagraphSubmitRequest, db: SessionDep) -> ParagraphSubmitResponse:
    session, metrics = ParagraphService(db).submit(payload.session_id, payload.typed_text)
    return ParagraphSubmitResponse(
        metrics=TypingMetricsResponse.model_validate(metrics),
        original_paragraph=session.paragraph_text,
    )


@router.get("/paragraph/{session_id}", response_model=ParagraphDetailResponse)
async def get_paragraph(session_id: str, db: SessionDep) -> ParagraphDetailResponse:
    session = ParagraphService(db).get(session_id)
    return ParagraphDetailResponse(
        paragraph_text=session.paragraph_text,
        paragraph_hash=session.paragraph_hash,
        time_limit=session.time_limit,
        completed=session.completed,
    )
