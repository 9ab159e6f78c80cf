"""initial leaderboard schema

Revision ID: 5b1e2c7d9a04
Revises:
Create Date: 2026-10-17 09:12:44.518203

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5b1e2c7d9a04"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create leaderboard, cursor and paragraph tables."""
    op.create_table(
        "leaderboard_entry",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("player_address", sa.String(length=42), nullable=False),
        sa.Column("mode", sa.SmallInteger(), nullable=False),
        sa.Column("session_id", sa.BigInteger(), nullable=True),
        sa.Column("words_typed", sa.Integer(), nullable=False),
        sa.Column("correct_words", sa.Integer(), nullable=False),
        sa.Column("mistakes", sa.Integer(), nullable=False),
        sa.Column("correct_characters", sa.Integer(), nullable=False),
        sa.Column("accuracy_basis_points", sa.Integer(), nullable=False),
        sa.Column("words_per_minute", sa.Integer(), nullable=False),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column("duration_seconds", sa.Integer(), nullable=False),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
        sa.Column("block_number", sa.BigInteger(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "player_address", "mode", "timestamp", name="uq_leaderboard_entry_identity"
        ),
    )
    op.create_index(
        "ix_leaderboard_entry_player_address", "leaderboard_entry", ["player_address"]
    )
    op.create_index(
        "ix_leaderboard_entry_mode_timestamp", "leaderboard_entry", ["mode", "timestamp"]
    )

    op.create_table(
        "sync_cursor",
        sa.Column("source", sa.String(length=64), nullable=False),
        sa.Column("last_processed_sequence", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("source"),
    )

    op.create_table(
        "paragraph_session",
        sa.Column("id", sa.String(length=128), nullable=False),
        sa.Column("player_address", sa.String(length=42), nullable=True),
        sa.Column("paragraph_text", sa.Text(), nullable=False),
        sa.Column("paragraph_hash", sa.String(length=64), nullable=False),
        sa.Column("time_limit", sa.Integer(), nullable=True),
        sa.Column("started_at", sa.BigInteger(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False),
        sa.Column("words_typed", sa.Integer(), nullable=True),
        sa.Column("correct_words", sa.Integer(), nullable=True),
        sa.Column("mistakes", sa.Integer(), nullable=True),
        sa.Column("correct_characters", sa.Integer(), nullable=True),
        sa.Column("accuracy", sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("paragraph_session")
    op.drop_table("sync_cursor")
    op.drop_index("ix_leaderboard_entry_mode_timestamp", table_name="leaderboard_entry")
    op.drop_index("ix_leaderboard_entry_player_address", table_name="leaderboard_entry")
    op.drop_table("leaderboard_entry")
