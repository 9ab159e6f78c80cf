"""Game result signing endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from typerank.api.v1.dependencies import SignerDep
from typerank.core.errors import ValidationError
from typerank.game.modes import VALID_TIME_LIMITS, GameMode
from typerank.schemas.game import SignGameRequest, SignGameResponse
from typerank.services.scoring import accuracy_basis_points, calculate_score
from typerank.utils.address import normalize_address

router = APIRouter(prefix="/game", tags=["game"])


def _validate_result(payload: SignGameRequest) -> GameMode:
    mode = GameMode.from_key(payload.mode)
    if payload.correct_words > payload.words_typed:
        raise ValidationError("correct_words cannot exceed words_typed")
    if payload.mistakes > payload.words_typed:
        raise ValidationError("mistakes cannot exceed words_typed")
    if payload.time_limit is not None and payload.time_limit not in VALID_TIME_LIMITS:
        raise ValidationError("Invalid time limit")
    return mode


@router.post("/sign", response_model=SignGameResponse)
async def sign_game_result(payload: SignGameRequest, signer: SignerDep) -> SignGameResponse:
    """Check a finished session's statistics and sign them for the ledger.

    Nothing is stored; the ledger is the record of truth and the
    leaderboard picks the result up from there.
    """
    player = normalize_address(payload.player)
    _validate_result(payload)

    accuracy = accuracy_basis_points(payload.correct_words, payload.words_typed) / 100
    score = calculate_score(
        accuracy, payload.mistakes, payload.duration_seconds or 0, payload.words_typed
    )
    signature = signer.sign_game_result(
        player,
        payload.session_id,
        payload.words_typed,
        payload.correct_words,
        payload.mistakes,
        payload.correct_characters,
        payload.wpm,
    )
    return SignGameResponse(
        player=player,
        session_id=payload.session_id,
        score=score,
        signature=signature,
    )
