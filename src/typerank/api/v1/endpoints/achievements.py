"""Achievement status, mint authorization and token metadata."""

from __future__ import annotations

from fastapi import APIRouter, Request

from typerank.api.v1.dependencies import AchievementServiceDep
from typerank.schemas.achievements import (
    AchievementMetadataResponse,
    AchievementStatusResponse,
    MintRequest,
    MintResponse,
)
from typerank.services.achievements import AchievementService
from typerank.utils.address import normalize_address

router = APIRouter(prefix="/achievements", tags=["achievements"])


@router.get("/metadata/{achievement_id}", response_model=AchievementMetadataResponse)
async def get_achievement_metadata(achievement_id: int, request: Request) -> AchievementMetadataResponse:
    metadata = AchievementService.metadata(achievement_id, str(request.base_url))
    if metadata is None:
        raise LookupError("Achievement not found")
    return AchievementMetadataResponse.model_validate(metadata)


@router.post("/mint", response_model=MintResponse)
async def authorize_mint(payload: MintRequest, service: AchievementServiceDep) -> MintResponse:
    """Sign a mint for an unlocked, not-yet-minted achievement."""
    player = normalize_address(payload.player)
    authorization = await service.authorize_mint(player, payload.achievement_id)
    return MintResponse(
        player=authorization.player,
        achievement_id=authorization.achievement_id,
        signature=authorization.signature,
    )


@router.get("/{address}", response_model=AchievementStatusResponse)
async def get_achievements(address: str, service: AchievementServiceDep) -> AchievementStatusResponse:
    achievement_status = await service.get_status(normalize_address(address))
    return AchievementStatusResponse(
        unlocked=achievement_status.unlocked,
        minted=achievement_status.minted,
        mintable=achievement_status.mintable,
    )
