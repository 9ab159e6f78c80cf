# src/typerank/models/paragraph.py
"""Server-issued paragraph typing sessions."""

from sqlalchemy import BigInteger, Boolean, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from typerank.db.session import Base


class ParagraphSession(Base):
    """A paragraph handed to a player, and its result once submitted."""

    __tablename__ = "paragraph_session"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    player_address: Mapped[str | None] = mapped_column(String(42), nullable=True)
    paragraph_text: Mapped[str] = mapped_column(Text, nullable=False)
    paragraph_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    time_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    started_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    words_typed: Mapped[int | None] = mapped_column(Integer, nullable=True)
    correct_words: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mistakes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    correct_characters: Mapped[int | None] = mapped_column(Integer, nullable=True)
    accuracy: Mapped[float | None] = mapped_column(Float, nullable=True)
