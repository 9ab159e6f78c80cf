# src/typerank/models/sync_cursor.py
"""Ingestion bookkeeping models."""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from typerank.db.session import Base


class SyncCursor(Base):
    """Durable bookmark of ingestion progress for one event source.

    Only ever moves forward, and only after the events up to
    ``last_processed_sequence`` are committed.
    """

    __tablename__ = "sync_cursor"

    source: Mapped[str] = mapped_column(String(64), primary_key=True)
    last_processed_sequence: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
