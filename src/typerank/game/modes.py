"""Game modes and their rule flags."""

from __future__ import annotations

from enum import IntEnum

from typerank.core.errors import ValidationError


class GameMode(IntEnum):
    """Ruleset governing session length and termination.

    Values match the mode enum recorded on the ledger.
    """

    TIME_LIMIT = 0
    WORD_COUNT = 1
    SURVIVAL = 2
    DAILY_CHALLENGE = 3
    PARAGRAPH = 4
    PRACTICE = 5

    @property
    def key(self) -> str:
        return self.name.lower().replace("_", "-")

    @property
    def is_unbounded(self) -> bool:
        """Modes that only end when the clock runs out."""
        return self in (GameMode.TIME_LIMIT, GameMode.PRACTICE)

    @property
    def uses_fixed_sequence(self) -> bool:
        """Modes whose words are supplied from outside the session."""
        return self in (GameMode.DAILY_CHALLENGE, GameMode.PARAGRAPH)

    @classmethod
    def from_key(cls, key: str) -> GameMode:
        normalized = key.strip().lower().replace("_", "-")
        for mode in cls:
            if mode.key == normalized:
                return mode
        raise ValidationError(f"Invalid mode: {key!r}")

    @classmethod
    def from_value(cls, value: int) -> GameMode:
        try:
            return cls(int(value))
        except (TypeError, ValueError) as err:
            raise ValidationError(f"Invalid mode: {value!r}") from err


# Modes that appear on the public leaderboard routes.
RANKED_MODES: tuple[GameMode, ...] = (
    GameMode.TIME_LIMIT,
    GameMode.WORD_COUNT,
    GameMode.SURVIVAL,
    GameMode.DAILY_CHALLENGE,
    GameMode.PARAGRAPH,
)

VALID_TIME_LIMITS: tuple[int, ...] = (15, 30, 45, 60, 120, 180)

SURVIVAL_MAX_MISTAKES = 3
