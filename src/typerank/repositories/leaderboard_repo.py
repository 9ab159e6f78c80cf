"""Data access helpers for ranked leaderboard entries."""
from __future__ import annotations

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session, aliased

from typerank.models.leaderboard import LeaderboardEntry

__all__ = ["LeaderboardRepository", "RANK_ORDER"]

# wpm desc, then score desc, then most recent first; row id keeps pages stable on full ties.
RANK_ORDER = (
    LeaderboardEntry.words_per_minute.desc(),
    LeaderboardEntry.score.desc(),
    LeaderboardEntry.timestamp.desc(),
    LeaderboardEntry.id.desc(),
)


class LeaderboardRepository:
    """Thin wrapper around database access for leaderboard entries."""

    def __init__(self, session: Session) -> None:
        self.session = session

    @staticmethod
    def _filtered(mode: int | None, since: int | None, until: int | None) -> list:
        conditions = []
        if mode is not None:
            conditions.append(LeaderboardEntry.mode == mode)
        if since is not None:
            conditions.append(LeaderboardEntry.timestamp >= since)
        if until is not None:
            conditions.append(LeaderboardEntry.timestamp < until)
        return conditions

    def _best_per_player(
        self, mode: int | None, since: int | None, until: int | None
    ) -> Select[tuple[LeaderboardEntry]]:
        position = (
            func.row_number()
            .over(partition_by=LeaderboardEntry.player_address, order_by=RANK_ORDER)
            .label("position")
        )
        ranked = (
            select(LeaderboardEntry.id.label("entry_id"), position)
            .where(*self._filtered(mode, since, until))
            .subquery()
        )
        best = aliased(LeaderboardEntry)
        return (
            select(best)
            .join(ranked, ranked.c.entry_id == best.id)
            .where(ranked.c.position == 1)
            .order_by(
                best.words_per_minute.desc(),
                best.score.desc(),
                best.timestamp.desc(),
                best.id.desc(),
            )
        )

    def list_best_per_player(
        self,
        *,
        mode: int | None = None,
        since: int | None = None,
        until: int | None = None,
        limit: int,
        offset: int = 0,
    ) -> list[LeaderboardEntry]:
        """One entry per player, the best under the ranking order, paginated."""
        stmt = self._best_per_player(mode, since, until).limit(limit).offset(offset)
        return list(self.session.execute(stmt).scalars())

    def count_players(
        self, *, mode: int | None = None, since: int | None = None, until: int | None = None
    ) -> int:
        """Number of distinct players with at least one matching entry."""
        stmt = select(func.count(func.distinct(LeaderboardEntry.player_address))).where(
            *self._filtered(mode, since, until)
        )
        return int(self.session.execute(stmt).scalar_one())

    def list_for_player(self, player_address: str) -> list[LeaderboardEntry]:
        """All entries of one player, ranked, unaggregated."""
        stmt = (
            select(LeaderboardEntry)
            .where(LeaderboardEntry.player_address == player_address.lower())
            .order_by(*RANK_ORDER)
        )
        return list(self.session.execute(stmt).scalars())

    def top(
        self, *, mode: int | None = None, since: int | None = None, until: int | None = None, limit: int
    ) -> list[LeaderboardEntry]:
        """Highest-ranked raw entries, without per-player aggregation."""
        stmt = (
            select(LeaderboardEntry)
            .where(*self._filtered(mode, since, until))
            .order_by(*RANK_ORDER)
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars())

    def count(self) -> int:
        return int(self.session.execute(select(func.count(LeaderboardEntry.id))).scalar_one())
