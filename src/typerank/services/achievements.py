"""Achievement unlock evaluation and mint authorization."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from typerank.core.errors import AuthorizationError, LedgerDisabledError, LedgerError
from typerank.game.modes import GameMode
from typerank.services.ledger import LedgerSource, SessionRecord
from typerank.services.signing import SigningAuthority

logger = logging.getLogger(__name__)

SPEED_DEMON_WPM = 80
PERFECT_ACCURACY_BASIS_POINTS = 10000
MARATHON_TOTAL_WORDS = 500
# Stand-in for "reached survival level 5"; sessions do not record the level.
SURVIVOR_WORDS = 50


@dataclass(frozen=True)
class Achievement:
    id: int
    key: str
    name: str
    check: Callable[[Sequence[SessionRecord]], bool]


ACHIEVEMENTS: tuple[Achievement, ...] = (
    Achievement(1, "first-steps", "First Steps", lambda sessions: len(sessions) > 0),
    Achievement(
        2,
        "speed-demon",
        "Speed Demon",
        lambda sessions: any(s.wpm >= SPEED_DEMON_WPM for s in sessions),
    ),
    Achievement(
        3,
        "perfectionist",
        "Perfectionist",
        lambda sessions: any(s.accuracy >= PERFECT_ACCURACY_BASIS_POINTS for s in sessions),
    ),
    Achievement(
        4,
        "marathon-runner",
        "Marathon Runner",
        lambda sessions: sum(s.words_typed for s in sessions) >= MARATHON_TOTAL_WORDS,
    ),
    Achievement(
        5,
        "survivor",
        "Survivor",
        lambda sessions: any(
            s.mode == GameMode.SURVIVAL and s.words_typed >= SURVIVOR_WORDS for s in sessions
        ),
    ),
    Achievement(
        6,
        "daily-champion",
        "Daily Champion",
        lambda sessions: any(s.mode == GameMode.DAILY_CHALLENGE and s.completed for s in sessions),
    ),
)

ACHIEVEMENTS_BY_ID = {achievement.id: achievement for achievement in ACHIEVEMENTS}


def evaluate_unlocked(sessions: Sequence[SessionRecord]) -> list[int]:
    """Ids whose predicate holds over the whole history, in declaration order."""
    return [achievement.id for achievement in ACHIEVEMENTS if achievement.check(sessions)]


def minted_ids(flags: Sequence[bool]) -> list[int]:
    """Convert the ledger's per-id flags (index 0 == id 1) into ids."""
    return [index + 1 for index, flag in enumerate(flags) if flag]


def reconcile_mintable(unlocked: Iterable[int], granted: Iterable[int]) -> list[int]:
    """Unlocked ids not known to be granted.

    An id absent from ``granted`` is mintable whether the ledger said no or
    simply has not been asked yet.
    """
    granted_set = set(granted)
    return [achievement_id for achievement_id in unlocked if achievement_id not in granted_set]


@dataclass(frozen=True)
class AchievementStatus:
    unlocked: list[int]
    minted: list[int]
    mintable: list[int]


@dataclass(frozen=True)
class MintAuthorization:
    player: str
    achievement_id: int
    signature: str


class AchievementService:
    """Reads a player's history from the ledger and evaluates achievements."""

    def __init__(self, ledger: LedgerSource | None, signer: SigningAuthority) -> None:
        self.ledger = ledger
        self.signer = signer

    async def _unlocked(self, player: str) -> list[int]:
        if self.ledger is None:
            return []
        sessions = await self.ledger.get_player_sessions(player)
        return evaluate_unlocked(sessions)

    async def get_status(self, player: str) -> AchievementStatus:
        """Unlocked, minted and mintable ids for ``player``.

        History failures yield an empty status; minted-lookup failures leave
        ``minted`` empty.
        """
        try:
            unlocked = await self._unlocked(player)
        except LedgerError as e:
            logger.warning("Cannot fetch session history for %s: %s", player, e)
            return AchievementStatus(unlocked=[], minted=[], mintable=[])

        minted: list[int] = []
        if self.ledger is not None:
            try:
                minted = minted_ids(await self.ledger.get_minted_achievements(player))
            except LedgerError as e:
                logger.warning("Failed to check minted status for %s: %s", player, e)

        return AchievementStatus(
            unlocked=unlocked,
            minted=minted,
            mintable=reconcile_mintable(unlocked, minted),
        )

    async def authorize_mint(self, player: str, achievement_id: int) -> MintAuthorization:
        """Sign ``(player, achievement_id)`` if it is unlocked and not yet minted.

        Raises:
            AuthorizationError: unknown, locked or already minted achievement.
            LedgerError: the ledger could not confirm the player's state.
        """
        if achievement_id not in ACHIEVEMENTS_BY_ID:
            raise AuthorizationError(f"Unknown achievement: {achievement_id}")
        if self.ledger is None:
            raise LedgerDisabledError("Ledger integration is disabled")

        unlocked = await self._unlocked(player)
        if achievement_id not in unlocked:
            raise AuthorizationError("Achievement not unlocked yet")

        minted = minted_ids(await self.ledger.get_minted_achievements(player))
        if achievement_id in minted:
            raise AuthorizationError("Achievement already minted")

        signature = self.signer.sign_achievement(player, achievement_id)
        return MintAuthorization(player=player, achievement_id=achievement_id, signature=signature)

    @staticmethod
    def metadata(achievement_id: int, image_base_url: str = "") -> dict[str, Any] | None:
        """Token metadata document for an achievement id."""
        achievement = ACHIEVEMENTS_BY_ID.get(achievement_id)
        if achievement is None:
            return None
        return {
            "name": f"Typing Achievement: {achievement.name}",
            "description": "Awarded for mastering the TypeRank typing game.",
            "image": f"{image_base_url.rstrip('/')}/achievements/{achievement_id}.png",
            "attributes": [{"trait_type": "Type", "value": achievement.name}],
        }
