"""Tests for the ranked leaderboard views."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from typerank.core.errors import ValidationError
from typerank.db.time import start_of_iso_week, start_of_utc_day
from typerank.game.modes import GameMode
from typerank.services.leaderboard import LeaderboardQueryService

PLAYER_A = "0x" + "a" * 40
PLAYER_B = "0x" + "b" * 40
PLAYER_C = "0x" + "c" * 40

# A Wednesday.
NOW = datetime(2026, 10, 14, 12, 0, tzinfo=UTC)
TODAY = start_of_utc_day(NOW)
WEEK_START = start_of_iso_week(NOW)


@pytest.fixture()
def service(db_session) -> LeaderboardQueryService:
    return LeaderboardQueryService(db_session, clock=lambda: NOW, default_limit=20, max_limit=50)


def players(page_or_entries) -> list[str]:
    entries = getattr(page_or_entries, "entries", page_or_entries)
    return [entry.player_address for entry in entries]


def test_one_best_entry_per_player(service, make_entry) -> None:
    make_entry(PLAYER_A, wpm=50)
    best = make_entry(PLAYER_A, wpm=70)
    make_entry(PLAYER_B, wpm=60)

    page = service.get_global()

    assert players(page) == [PLAYER_A, PLAYER_B]
    assert page.entries[0].id == best.id
    assert page.total == 2


def test_ties_break_on_score_then_recency(service, make_entry) -> None:
    make_entry(PLAYER_A, wpm=60, score=100.0, timestamp=TODAY + 30)
    make_entry(PLAYER_B, wpm=60, score=200.0, timestamp=TODAY + 10)
    make_entry(PLAYER_C, wpm=60, score=200.0, timestamp=TODAY + 20)

    assert players(service.get_global()) == [PLAYER_C, PLAYER_B, PLAYER_A]


def test_best_entry_within_player_uses_same_order(service, make_entry) -> None:
    make_entry(PLAYER_A, wpm=60, score=150.0, timestamp=TODAY + 1)
    newer = make_entry(PLAYER_A, wpm=60, score=150.0, timestamp=TODAY + 2)
    make_entry(PLAYER_A, wpm=60, score=120.0, timestamp=TODAY + 3)

    page = service.get_global()

    assert [entry.id for entry in page.entries] == [newer.id]


def test_weekly_period_starts_monday(service, make_entry) -> None:
    make_entry(PLAYER_A, wpm=90, timestamp=WEEK_START - 1)
    make_entry(PLAYER_B, wpm=40, timestamp=WEEK_START)

    assert players(service.get_global(period="weekly")) == [PLAYER_B]
    assert players(service.get_global(period="all")) == [PLAYER_A, PLAYER_B]


def test_unknown_period_is_rejected(service) -> None:
    with pytest.raises(ValidationError):
        service.get_global(period="monthly")


def test_mode_view_filters_by_mode(service, make_entry) -> None:
    make_entry(PLAYER_A, mode=int(GameMode.SURVIVAL), wpm=30)
    make_entry(PLAYER_B, mode=int(GameMode.TIME_LIMIT), wpm=90)

    page = service.get_by_mode("survival")

    assert page.mode is GameMode.SURVIVAL
    assert players(page) == [PLAYER_A]


def test_unknown_mode_is_rejected(service) -> None:
    with pytest.raises(ValidationError):
        service.get_by_mode("marathon")


def test_practice_has_no_board(service) -> None:
    with pytest.raises(ValidationError):
        service.get_by_mode("practice")


def test_daily_challenge_only_shows_today(service, make_entry) -> None:
    daily = int(GameMode.DAILY_CHALLENGE)
    make_entry(PLAYER_A, mode=daily, wpm=120, timestamp=TODAY - 60)
    make_entry(PLAYER_B, mode=daily, wpm=50, timestamp=TODAY + 60)
    make_entry(PLAYER_C, mode=daily, wpm=80, timestamp=TODAY + 86400)

    page = service.get_by_mode("daily-challenge")

    assert players(page) == [PLAYER_B]
    assert page.total == 1


def test_limit_is_clamped(service) -> None:
    assert service.clamp_limit(None) == 20
    assert service.clamp_limit(0) == 1
    assert service.clamp_limit(-5) == 1
    assert service.clamp_limit(500) == 50


def test_pagination(service, make_entry) -> None:
    for index, player in enumerate((PLAYER_A, PLAYER_B, PLAYER_C)):
        make_entry(player, wpm=90 - index * 10)

    page = service.get_global(limit=1, offset=1)

    assert players(page) == [PLAYER_B]
    assert (page.total, page.limit, page.offset) == (3, 1, 1)


def test_full_ties_page_without_overlap(service, make_entry) -> None:
    for player in (PLAYER_A, PLAYER_B, PLAYER_C):
        make_entry(player, wpm=60, timestamp=TODAY + 5)

    pages = [players(service.get_global(limit=1, offset=offset)) for offset in range(3)]

    assert pages == [[PLAYER_C], [PLAYER_B], [PLAYER_A]]
    assert players(service.get_global(limit=3)) == [PLAYER_C, PLAYER_B, PLAYER_A]


def test_player_history_is_unaggregated_and_case_insensitive(service, make_entry) -> None:
    make_entry(PLAYER_A, wpm=40)
    make_entry(PLAYER_A, wpm=75)
    make_entry(PLAYER_B, wpm=99)

    entries = service.get_by_player(PLAYER_A.upper().replace("0X", "0x"))

    assert [entry.words_per_minute for entry in entries] == [75, 40]


def test_top_scores_keeps_every_entry(service, make_entry) -> None:
    mode = int(GameMode.WORD_COUNT)
    make_entry(PLAYER_A, mode=mode, wpm=70)
    make_entry(PLAYER_A, mode=mode, wpm=65)
    make_entry(PLAYER_B, mode=mode, wpm=60)

    top = service.top_scores(GameMode.WORD_COUNT, limit=2)

    assert [entry.words_per_minute for entry in top] == [70, 65]
    assert service.count() == 3
