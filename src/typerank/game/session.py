"""Deterministic typing-session state machine.

A :class:`TypingSession` turns per-word submissions into progress and final
statistics. It knows nothing about rendering or networking; the clock and the
word source are injected so a session can be replayed exactly.

The timer starts on the first submission, not when the session is created,
so idle time before typing never counts.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date as date_type

from typerank.core.errors import InvalidStateError, ValidationError
from typerank.game.modes import SURVIVAL_MAX_MISTAKES, GameMode
from typerank.game.words import WordGenerator, hash_string

Clock = Callable[[], int]

FREE_PLAY_BATCH = 100
CHARACTERS_PER_WORD = 5


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity."""
    return math.floor(value + 0.5)


@dataclass
class SessionConfig:
    """Mode-specific knobs, partly filled in by :meth:`TypingSession.initialize`."""

    word_count: int | None = None
    time_limit: int | None = None
    words: list[str] | None = None
    paragraph_text: str | None = None
    date: str | date_type | None = None
    survival_level: int | None = None
    max_mistakes: int | None = None
    challenge_hash: int | None = None


@dataclass(frozen=True)
class TypedWord:
    expected: str
    typed: str
    correct: bool
    timestamp_ms: int


@dataclass(frozen=True)
class ProgressSnapshot:
    current_word_index: int
    total_words: int | None
    correct_words: int
    correct_characters: int
    mistakes: int
    accuracy: float
    time_elapsed: float


@dataclass(frozen=True)
class SubmitResult:
    accepted: bool
    was_correct: bool
    is_completed: bool
    is_game_over: bool
    next_expected_word: str | None
    progress: ProgressSnapshot
    reason: str | None = None


@dataclass(frozen=True)
class SessionStats:
    """Immutable snapshot of a session's performance."""

    mode: GameMode
    words_typed: int
    correct_words: int
    mistakes: int
    accuracy_percent: float
    duration_seconds: int
    words_per_minute: int
    correct_characters: int
    completed: bool
    survival_level: int | None = None

    @property
    def accuracy_basis_points(self) -> int:
        return round_half_up(self.accuracy_percent * 100)


@dataclass
class TypingSession:
    """One play-through, owned by a single game instance."""

    mode: GameMode
    config: SessionConfig = field(default_factory=SessionConfig)
    clock: Clock = _wall_clock_ms
    generator: WordGenerator = field(default_factory=WordGenerator)

    words: list[str] = field(default_factory=list, init=False)
    current_word_index: int = field(default=0, init=False)
    typed_words: list[TypedWord] = field(default_factory=list, init=False)
    mistakes: int = field(default=0, init=False)
    correct_words: int = field(default=0, init=False)
    correct_characters: int = field(default=0, init=False)
    start_time_ms: int | None = field(default=None, init=False)
    end_time_ms: int | None = field(default=None, init=False)
    completed: bool = field(default=False, init=False)
    game_over: bool = field(default=False, init=False)

    def initialize(self) -> TypingSession:
        """Populate the word sequence for the mode. Returns ``self``."""
        mode = self.mode
        config = self.config
        if mode is GameMode.WORD_COUNT:
            if not config.word_count or config.word_count <= 0:
                raise ValidationError("Word count mode requires a positive word_count")
            self.words = self.generator.generate_words(config.word_count)
        elif mode is GameMode.SURVIVAL:
            config.survival_level = 1
            config.max_mistakes = SURVIVAL_MAX_MISTAKES
            self.words = self.generator.generate_survival_words(1)
        elif mode is GameMode.DAILY_CHALLENGE:
            if config.words:
                self.words = list(config.words)
            elif config.date is not None:
                challenge = self.generator.generate_daily_challenge(config.date)
                self.words = list(challenge.words)
                config.time_limit = challenge.time_limit
                config.challenge_hash = challenge.hash
            else:
                raise ValidationError("Daily challenge requires a date or a word sequence")
        elif mode is GameMode.PARAGRAPH:
            if config.words:
                self.words = list(config.words)
            elif config.paragraph_text:
                self.words = config.paragraph_text.split()
            if not self.words:
                raise ValidationError("Paragraph mode requires paragraph text")
        else:
            self.words = self.generator.generate_words(FREE_PLAY_BATCH)
        return self

    @property
    def current_word(self) -> str | None:
        if self.current_word_index < len(self.words):
            return self.words[self.current_word_index]
        return None

    def submit_word(self, typed: str) -> SubmitResult:
        """Record one submitted word and advance the state machine."""
        if self.completed:
            raise InvalidStateError("Game already completed")
        if not self.words:
            raise InvalidStateError("Session has not been initialized")

        now = self.clock()
        if self.start_time_ms is None:
            self.start_time_ms = now

        expected = self.words[self.current_word_index]
        is_correct = typed.strip().lower() == expected.lower()
        self.typed_words.append(
            TypedWord(expected=expected, typed=typed, correct=is_correct, timestamp_ms=now)
        )

        if is_correct:
            self.correct_words += 1
            self.correct_characters += len(expected)
            self.current_word_index += 1
        else:
            self.mistakes += 1
            if self.mode is GameMode.SURVIVAL and self.mistakes >= SURVIVAL_MAX_MISTAKES:
                self.game_over = True
                self.complete()
                return self._result(is_correct, reason="Too many mistakes - Game Over!")

        if self.mode is GameMode.WORD_COUNT and self.current_word_index >= (self.config.word_count or 0):
            self.complete()
        elif self.mode.uses_fixed_sequence and self.current_word_index >= len(self.words):
            self.complete()
        elif self.current_word_index >= len(self.words):
            self._extend_sequence()

        return self._result(is_correct)

    def _extend_sequence(self) -> None:
        if self.mode is GameMode.SURVIVAL:
            self.config.survival_level = (self.config.survival_level or 1) + 1
            self.words.extend(self.generator.generate_survival_words(self.config.survival_level))
        else:
            self.words.extend(self.generator.generate_words(FREE_PLAY_BATCH))

    def _result(self, was_correct: bool, *, reason: str | None = None) -> SubmitResult:
        return SubmitResult(
            accepted=True,
            was_correct=was_correct,
            is_completed=self.completed,
            is_game_over=self.game_over,
            next_expected_word=None if self.completed else self.current_word,
            progress=self.progress(),
            reason=reason,
        )

    def complete(self) -> None:
        """End the session. Idempotent."""
        if self.completed:
            return
        self.completed = True
        self.end_time_ms = self.clock()

    def expire_if_elapsed(self, time_limit: int | None = None) -> bool:
        """Complete the session once its time limit has passed.

        Time-limited modes have no natural end, so the caller polls this.
        Returns True when the session is (now) completed.
        """
        if self.completed:
            return True
        limit = time_limit if time_limit is not None else self.config.time_limit
        if limit is None or self.start_time_ms is None:
            return False
        if self.elapsed_seconds() >= limit:
            self.complete()
        return self.completed

    def elapsed_seconds(self) -> float:
        if self.start_time_ms is None:
            return 0.0
        end = self.end_time_ms if self.end_time_ms is not None else self.clock()
        return (end - self.start_time_ms) / 1000

    def accuracy(self) -> float:
        total = len(self.typed_words)
        if total == 0:
            return 100.0
        return round_half_up(self.correct_words / total * 10000) / 100

    def progress(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            current_word_index=self.current_word_index,
            total_words=None if self.mode.is_unbounded else len(self.words),
            correct_words=self.correct_words,
            correct_characters=self.correct_characters,
            mistakes=self.mistakes,
            accuracy=self.accuracy(),
            time_elapsed=self.elapsed_seconds(),
        )

    def compute_stats(self) -> SessionStats:
        """Derive the final statistics from the typed-word log."""
        duration = self.elapsed_seconds()
        minutes = duration / 60
        correct_characters = sum(len(word.expected) for word in self.typed_words if word.correct)

        wpm = 0
        if minutes > 0:
            wpm = round_half_up(correct_characters / CHARACTERS_PER_WORD / minutes)

        return SessionStats(
            mode=self.mode,
            words_typed=len(self.typed_words),
            correct_words=self.correct_words,
            mistakes=self.mistakes,
            accuracy_percent=self.accuracy(),
            duration_seconds=round_half_up(duration),
            words_per_minute=max(0, wpm),
            correct_characters=correct_characters,
            completed=self.completed,
            survival_level=self.config.survival_level,
        )

    def word_set_hash(self) -> str:
        """Hex fingerprint of the word sequence, zero-padded to 32 bytes."""
        return "0x" + format(hash_string(",".join(self.words)), "x").rjust(64, "0")
