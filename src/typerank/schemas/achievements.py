"""Achievement-related Pydantic schemas."""

from pydantic import BaseModel, Field


class AchievementStatusResponse(BaseModel):
    success: bool = True
    unlocked: list[int]
    minted: list[int]
    mintable: list[int]


class MintRequest(BaseModel):
    player: str
    achievement_id: int = Field(..., ge=1)


class MintResponse(BaseModel):
    success: bool = True
    player: str
    achievement_id: int
    signature: str


class MetadataAttribute(BaseModel):
    trait_type: str
    value: str


class AchievementMetadataResponse(BaseModel):
    name: str
    description: str
    image: str
    attributes: list[MetadataAttribute]
