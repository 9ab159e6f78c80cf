"""Scoring and ranking primitives.

``calculate_score`` is the leaderboard's secondary sort key, so its
arithmetic (operand order included) must not change.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from typerank.game.session import round_half_up

ACCURACY_WEIGHT = 0.4
MISTAKE_WEIGHT = 0.2
MISTAKE_POINTS = 20
MISTAKE_CEILING = 100
SPEED_WEIGHT = 0.2
SPEED_NUMERATOR = 10000
VOLUME_WEIGHT = 0.2


class Rankable(Protocol):
    words_per_minute: int
    score: float
    timestamp: int


def calculate_score(
    accuracy_percent: float,
    mistakes: int,
    duration_seconds: float,
    words_typed: int,
) -> float:
    """Blend accuracy, error avoidance, speed and volume into one number.

    Total: never raises for numeric input; a non-positive duration
    contributes no speed term.
    """
    accuracy_score = (accuracy_percent or 0) * ACCURACY_WEIGHT
    mistake_score = max(0, MISTAKE_CEILING - (mistakes or 0)) * MISTAKE_POINTS * MISTAKE_WEIGHT
    speed_score = (SPEED_NUMERATOR / duration_seconds) * SPEED_WEIGHT if duration_seconds > 0 else 0
    word_score = (words_typed or 0) * VOLUME_WEIGHT
    return accuracy_score + mistake_score + speed_score + word_score


class Scorable(Protocol):
    accuracy_basis_points: int
    mistakes: int
    duration_seconds: int
    words_typed: int


def score_entry(entry: Scorable) -> float:
    """Score a normalized entry; accuracy is taken from its basis points."""
    return calculate_score(
        entry.accuracy_basis_points / 100,
        entry.mistakes,
        entry.duration_seconds,
        entry.words_typed,
    )


def accuracy_basis_points(correct_words: int, words_typed: int) -> int:
    """Accuracy * 100 as an integer; 10000 when nothing was typed."""
    if words_typed <= 0:
        return 10000
    return round_half_up(correct_words / words_typed * 10000)


def ranking_key(entry: Rankable) -> tuple[int, float, int]:
    """Sort key: wpm desc, then score desc, then most recent first."""
    return (-entry.words_per_minute, -entry.score, -entry.timestamp)


def rank(entries: list[Rankable]) -> list[Rankable]:
    return sorted(entries, key=ranking_key)


@dataclass(frozen=True)
class TypingMetrics:
    words_typed: int
    correct_words: int
    mistakes: int
    accuracy: float
    accuracy_basis_points: int
    total_characters: int
    correct_characters: int


def calculate_typing_metrics(original: str, typed: str) -> TypingMetrics:
    """Compare typed text against the original word by word, by position.

    Submitting nothing scores 0% accuracy; the 100% rule for zero words
    belongs to live sessions, not to paragraph comparison.
    """
    original_words = original.split()
    typed_words = typed.split()

    correct_words = 0
    mistakes = 0
    correct_characters = 0
    total_characters = 0
    for index, word in enumerate(typed_words):
        expected = original_words[index] if index < len(original_words) else ""
        if word.lower() == expected.lower():
            correct_words += 1
            correct_characters += len(expected)
        else:
            mistakes += 1
        total_characters += len(word)

    basis_points = accuracy_basis_points(correct_words, len(typed_words)) if typed_words else 0
    return TypingMetrics(
        words_typed=len(typed_words),
        correct_words=correct_words,
        mistakes=mistakes,
        accuracy=basis_points / 100,
        accuracy_basis_points=basis_points,
        total_characters=total_characters,
        correct_characters=correct_characters,
    )
