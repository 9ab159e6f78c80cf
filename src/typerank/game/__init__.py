"""Client-side game rules: modes, word generation and the session engine."""

from .modes import GameMode
from .session import SessionConfig, SessionStats, SubmitResult, TypingSession
from .words import DailyChallenge, WordGenerator

__all__ = [
    "DailyChallenge",
    "GameMode",
    "SessionConfig",
    "SessionStats",
    "SubmitResult",
    "TypingSession",
    "WordGenerator",
]
