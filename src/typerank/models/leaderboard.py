# src/typerank/models/leaderboard.py
"""Ranked leaderboard rows derived from ledger completion events."""

from sqlalchemy import BigInteger, Float, Index, Integer, SmallInteger, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from typerank.db.session import Base


class LeaderboardEntry(Base):
    """One completed session as observed on the ledger.

    Rows are immutable once written. Re-observing the same event is a
    duplicate, identified by (player_address, mode, timestamp).
    """

    __tablename__ = "leaderboard_entry"
    __table_args__ = (
        UniqueConstraint("player_address", "mode", "timestamp", name="uq_leaderboard_entry_identity"),
        Index("ix_leaderboard_entry_mode_timestamp", "mode", "timestamp"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Stored lower-cased; addresses compare case-insensitively.
    player_address: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    mode: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    session_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    words_typed: Mapped[int] = mapped_column(Integer, nullable=False)
    correct_words: Mapped[int] = mapped_column(Integer, nullable=False)
    mistakes: Mapped[int] = mapped_column(Integer, nullable=False)
    correct_characters: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # accuracy * 100, i.e. 10000 == 100.00%
    accuracy_basis_points: Mapped[int] = mapped_column(Integer, nullable=False)
    words_per_minute: Mapped[int] = mapped_column(Integer, nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False)

    # Ledger event time in unix seconds, never wall-clock.
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    block_number: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    @property
    def accuracy_percent(self) -> float:
        return self.accuracy_basis_points / 100
