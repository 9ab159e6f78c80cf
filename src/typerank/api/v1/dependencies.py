"""Shared API dependencies."""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from typerank.context import AppContext, build_app_context
from typerank.db.session import get_db
from typerank.services.achievements import AchievementService
from typerank.services.leaderboard import LeaderboardQueryService
from typerank.services.signing import SigningAuthority

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_app_context(request: Request) -> AppContext:
    """Return the services built at startup, building them on first use otherwise."""
    context = getattr(request.app.state, "context", None)
    if context is None:
        context = build_app_context()
        request.app.state.context = context
    return context


ContextDep = Annotated[AppContext, Depends(get_app_context)]


def get_leaderboard_service(db: SessionDep) -> LeaderboardQueryService:
    return LeaderboardQueryService(db)


def get_achievement_service(context: ContextDep) -> AchievementService:
    return context.achievements


def get_signer(context: ContextDep) -> SigningAuthority:
    return context.signer


LeaderboardServiceDep = Annotated[LeaderboardQueryService, Depends(get_leaderboard_service)]
AchievementServiceDep = Annotated[AchievementService, Depends(get_achievement_service)]
SignerDep = Annotated[SigningAuthority, Depends(get_signer)]
