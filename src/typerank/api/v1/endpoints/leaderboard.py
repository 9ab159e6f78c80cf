"""Leaderboard endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query

from typerank.api.v1.dependencies import LeaderboardServiceDep
from typerank.schemas.leaderboard import (
    LeaderboardEntryResponse,
    LeaderboardPageResponse,
    PlayerEntriesResponse,
)
from typerank.services.leaderboard import PERIOD_ALL, LeaderboardPage
from typerank.utils.address import normalize_address

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


def _page_response(page: LeaderboardPage) -> LeaderboardPageResponse:
    return LeaderboardPageResponse(
        period=page.period,
        mode=page.mode.key if page.mode is not None else None,
        total=page.total,
        limit=page.limit,
        offset=page.offset,
        entries=[LeaderboardEntryResponse.model_validate(entry) for entry in page.entries],
    )


@router.get("", response_model=LeaderboardPageResponse)
@router.get("/global", response_model=LeaderboardPageResponse)
async def get_global_leaderboard(
    service: LeaderboardServiceDep,
    period: str = Query(PERIOD_ALL, description="'all' or 'weekly'"),
    limit: int | None = Query(None, description="Page size, clamped to the configured maximum"),
    offset: int = Query(0),
) -> LeaderboardPageResponse:
    """Best entry per player across every mode."""
    return _page_response(service.get_global(period, limit, offset))


@router.get("/player/{address}", response_model=PlayerEntriesResponse)
async def get_player_entries(address: str, service: LeaderboardServiceDep) -> PlayerEntriesResponse:
    """Every entry of one player, ranked."""
    player = normalize_address(address)
    entries = service.get_by_player(player)
    return PlayerEntriesResponse(
        player_address=player,
        entries=[LeaderboardEntryResponse.model_validate(entry) for entry in entries],
    )


@router.get("/{mode}", response_model=LeaderboardPageResponse)
async def get_mode_leaderboard(
    mode: str,
    service: LeaderboardServiceDep,
    period: str = Query(PERIOD_ALL),
    limit: int | None = Query(None),
    offset: int = Query(0),
) -> LeaderboardPageResponse:
    """Best entry per player within one mode."""
    return _page_response(service.get_by_mode(mode, period, limit, offset))
