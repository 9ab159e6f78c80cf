"""Daily challenge rotation and server-issued paragraph sessions."""

from __future__ import annotations

import logging
import random
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date

from sqlalchemy.orm import Session

from typerank.core.errors import InvalidStateError, ValidationError
from typerank.db.time import utcnow
from typerank.game.modes import VALID_TIME_LIMITS, GameMode
from typerank.models import LeaderboardEntry, ParagraphSession
from typerank.services.leaderboard import LeaderboardQueryService
from typerank.services.scoring import TypingMetrics, calculate_typing_metrics
from typerank.utils.hash import blake3_hexdigest

logger = logging.getLogger(__name__)

DAILY_TEXTS: tuple[str, ...] = (
    "The quick brown fox jumps over the lazy dog. This is a classic pangram used to test "
    "typing speed and accuracy.",
    "To be or not to be, that is the question. Whether 'tis nobler in the mind to suffer "
    "the slings and arrows of outrageous fortune.",
    "All that glitters is not gold. Often have you heard that told. Many a man his life "
    "hath sold but my outside to behold.",
    "It was the best of times, it was the worst of times, it was the age of wisdom, it was "
    "the age of foolishness.",
    "In the beginning God created the heaven and the earth. And the earth was without form, "
    "and void; and darkness was upon the face of the deep.",
)

DAILY_TIME_LIMIT = 60
DAILY_DIFFICULTY = "Normal"
DAILY_LEADERBOARD_SIZE = 10

PARAGRAPHS: tuple[str, ...] = (
    "Typing quickly is a skill built one careful keystroke at a time. Accuracy comes first, "
    "and speed follows once the fingers learn where every key lives.",
    "A ledger never forgets. Every result written to it stays there, ordered and verifiable, "
    "long after the game that produced it has ended.",
    "The river bends around the old stone bridge, carrying leaves and light downstream while "
    "the town above wakes slowly to the sound of bells.",
    "Good software is rarely finished. It is tuned, measured and rewritten until the rough "
    "edges wear smooth and the people using it stop noticing it at all.",
    "Under a pale winter sky the market filled with voices, the smell of roasted chestnuts "
    "and the clatter of carts over wet cobblestones.",
)


def daily_challenge_text(day: date) -> str:
    """Rotate through the fixed texts by day of year."""
    return DAILY_TEXTS[day.timetuple().tm_yday % len(DAILY_TEXTS)]


@dataclass(frozen=True)
class DailyChallengeView:
    date: str
    text: str
    words: list[str]
    word_count: int
    time_limit: int
    difficulty: str
    text_hash: str
    leaderboard: list[LeaderboardEntry]


def get_daily_challenge(
    query: LeaderboardQueryService, today: date | None = None
) -> DailyChallengeView:
    """Today's text and the top daily-challenge results so far."""
    day = today or utcnow().date()
    text = daily_challenge_text(day)
    words = text.split()
    return DailyChallengeView(
        date=day.isoformat(),
        text=text,
        words=words,
        word_count=len(words),
        time_limit=DAILY_TIME_LIMIT,
        difficulty=DAILY_DIFFICULTY,
        text_hash=blake3_hexdigest(text.encode("utf-8")),
        leaderboard=query.top_scores(GameMode.DAILY_CHALLENGE, DAILY_LEADERBOARD_SIZE),
    )


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


class ParagraphService:
    """Issues paragraphs to type and scores what comes back."""

    def __init__(
        self,
        db: Session,
        *,
        clock: Callable[[], int] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.db = db
        self.clock = clock or _wall_clock_ms
        self.rng = rng or random.Random()

    def start(self, time_limit: int | None = None, player_address: str | None = None) -> ParagraphSession:
        """Pick a paragraph and record a new session for it.

        Raises:
            ValidationError: ``time_limit`` is given but not one of the allowed values.
        """
        if time_limit is not None and time_limit not in VALID_TIME_LIMITS:
            raise ValidationError("Invalid time limit")

        text = self.rng.choice(PARAGRAPHS)
        started_at = self.clock()
        session = ParagraphSession(
            id=f"{(player_address or 'anon').lower()}_{started_at}_{uuid.uuid4().hex}",
            player_address=player_address.lower() if player_address else None,
            paragraph_text=text,
            paragraph_hash=blake3_hexdigest(text.encode("utf-8")),
            time_limit=time_limit,
            started_at=started_at,
            completed=False,
        )
        self.db.add(session)
        self.db.commit()
        logger.info("Started paragraph session %s", session.id)
        return session

    def get(self, session_id: str) -> ParagraphSession:
        session = self.db.get(ParagraphSession, session_id)
        if session is None:
            raise LookupError(f"Paragraph session not found: {session_id}")
        return session

    def submit(self, session_id: str, typed_text: str) -> tuple[ParagraphSession, TypingMetrics]:
        """Score ``typed_text`` against the session's paragraph and close it.

        Raises:
            LookupError: unknown session id.
            InvalidStateError: the session was already submitted.
        """
        session = self.get(session_id)
        if session.completed:
            raise InvalidStateError("Paragraph session already submitted")

        metrics = calculate_typing_metrics(session.paragraph_text, typed_text or "")
        session.completed = True
        session.words_typed = metrics.words_typed
        session.correct_words = metrics.correct_words
        session.mistakes = metrics.mistakes
        session.correct_characters = metrics.correct_characters
        session.accuracy = metrics.accuracy
        self.db.commit()
        return session, metrics
