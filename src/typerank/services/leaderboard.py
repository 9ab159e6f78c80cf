"""Read side of the leaderboard: ranked, aggregated, paginated views."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from typerank.core.errors import ValidationError
from typerank.core.settings import settings
from typerank.db.time import start_of_iso_week, start_of_utc_day, utcnow
from typerank.game.modes import RANKED_MODES, GameMode
from typerank.models import LeaderboardEntry
from typerank.repositories import LeaderboardRepository

PERIOD_ALL = "all"
PERIOD_WEEKLY = "weekly"
PERIODS = (PERIOD_ALL, PERIOD_WEEKLY)

SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class LeaderboardPage:
    entries: list[LeaderboardEntry]
    total: int
    limit: int
    offset: int
    period: str
    mode: GameMode | None = None


class LeaderboardQueryService:
    """Best-entry-per-player rankings over the stored entries."""

    def __init__(
        self,
        db: Session,
        *,
        clock: Callable[[], datetime] | None = None,
        default_limit: int | None = None,
        max_limit: int | None = None,
    ) -> None:
        self.repository = LeaderboardRepository(db)
        self.clock = clock or utcnow
        self.default_limit = default_limit or settings.leaderboard_default_limit
        self.max_limit = max_limit or settings.leaderboard_max_limit

    def clamp_limit(self, limit: int | None) -> int:
        if limit is None:
            limit = self.default_limit
        return max(1, min(int(limit), self.max_limit))

    def _since(self, period: str | None) -> int | None:
        normalized = (period or PERIOD_ALL).strip().lower()
        if normalized not in PERIODS:
            raise ValidationError(f"Invalid period: {period!r}")
        if normalized == PERIOD_WEEKLY:
            return start_of_iso_week(self.clock())
        return None

    def get_global(
        self, period: str | None = PERIOD_ALL, limit: int | None = None, offset: int = 0
    ) -> LeaderboardPage:
        """Each player's best entry across all modes."""
        since = self._since(period)
        limit = self.clamp_limit(limit)
        offset = max(0, int(offset or 0))
        entries = self.repository.list_best_per_player(since=since, limit=limit, offset=offset)
        total = self.repository.count_players(since=since)
        return LeaderboardPage(
            entries=entries,
            total=total,
            limit=limit,
            offset=offset,
            period=(period or PERIOD_ALL).lower(),
        )

    def get_by_mode(
        self,
        mode_key: str,
        period: str | None = PERIOD_ALL,
        limit: int | None = None,
        offset: int = 0,
    ) -> LeaderboardPage:
        """Each player's best entry in one mode.

        The daily challenge resets at 00:00 UTC, so it only ever shows today.
        """
        mode = GameMode.from_key(mode_key)
        if mode not in RANKED_MODES:
            raise ValidationError(f"Mode {mode.key} has no leaderboard")
        since = self._since(period)
        until = None
        if mode is GameMode.DAILY_CHALLENGE:
            day_start = start_of_utc_day(self.clock())
            since = max(since or day_start, day_start)
            until = day_start + SECONDS_PER_DAY

        limit = self.clamp_limit(limit)
        offset = max(0, int(offset or 0))
        entries = self.repository.list_best_per_player(
            mode=int(mode), since=since, until=until, limit=limit, offset=offset
        )
        total = self.repository.count_players(mode=int(mode), since=since, until=until)
        return LeaderboardPage(
            entries=entries,
            total=total,
            limit=limit,
            offset=offset,
            period=(period or PERIOD_ALL).lower(),
            mode=mode,
        )

    def get_by_player(self, address: str) -> list[LeaderboardEntry]:
        return self.repository.list_for_player(address)

    def top_scores(self, mode: GameMode, limit: int = 10) -> list[LeaderboardEntry]:
        """Highest raw entries for ``mode``; the daily challenge only counts today."""
        since = until = None
        if mode is GameMode.DAILY_CHALLENGE:
            since = start_of_utc_day(self.clock())
            until = since + SECONDS_PER_DAY
        return self.repository.top(mode=int(mode), since=since, until=until, limit=self.clamp_limit(limit))

    def count(self) -> int:
        return self.repository.count()
