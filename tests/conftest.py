# tests/conftest.py
from __future__ import annotations

from collections.abc import Callable, Generator, Iterator
from itertools import count

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from typerank.api.v1.dependencies import get_app_context
from typerank.context import AppContext, build_app_context
from typerank.db.session import Base
from typerank.db.session import get_db as app_get_session
from typerank.main import app as fastapi_app
from typerank.models import LeaderboardEntry
from typerank.services.scoring import score_entry
from typerank.services.signing import SigningAuthority

TEST_DB_URL = "sqlite://"
TEST_SIGNER_SEED = "11" * 32

PLAYER_A = "0x" + "a" * 40
PLAYER_B = "0x" + "b" * 40
PLAYER_C = "0x" + "c" * 40

_TIMESTAMP_COUNTER = count(1_700_000_000)


def _memory_engine() -> Engine:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = _memory_engine()
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    session.begin_nested()

    @event.listens_for(session, "after_transaction_end")
    def restart_savepoint(sess: Session, trans) -> None:  # pragma: no cover - SQLAlchemy internals
        if trans.nested and not getattr(trans._parent, "nested", False):
            session.begin_nested()

    try:
        yield session
    finally:
        event.remove(session, "after_transaction_end", restart_savepoint)
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def session_factory() -> Iterator[sessionmaker[Session]]:
    """A private database for code that opens and commits its own sessions."""
    engine = _memory_engine()
    try:
        yield sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    finally:
        engine.dispose()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def signer() -> SigningAuthority:
    return SigningAuthority.from_hex(TEST_SIGNER_SEED)


@pytest.fixture()
def app_context(app: FastAPI, signer: SigningAuthority) -> Iterator[AppContext]:
    """Services with the ledger disabled and a known signing key."""
    context = build_app_context(signer=signer)
    app.dependency_overrides[get_app_context] = lambda: context
    try:
        yield context
    finally:
        app.dependency_overrides.pop(get_app_context, None)


@pytest.fixture()
def client(app: FastAPI, app_context: AppContext) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def make_entry(db_session: Session) -> Callable[..., LeaderboardEntry]:
    """Persist a leaderboard entry with sensible defaults."""

    def _make_entry(
        player: str = PLAYER_A,
        *,
        mode: int = 0,
        wpm: int = 60,
        timestamp: int | None = None,
        words_typed: int = 40,
        correct_words: int | None = None,
        mistakes: int = 0,
        duration_seconds: int = 30,
        score: float | None = None,
    ) -> LeaderboardEntry:
        correct = words_typed - mistakes if correct_words is None else correct_words
        entry = LeaderboardEntry(
            player_address=player.lower(),
            mode=mode,
            session_id=None,
            words_typed=words_typed,
            correct_words=correct,
            mistakes=mistakes,
            correct_characters=correct * 5,
            accuracy_basis_points=round(correct / words_typed * 10000) if words_typed else 10000,
            words_per_minute=wpm,
            score=0.0,
            duration_seconds=duration_seconds,
            timestamp=timestamp if timestamp is not None else next(_TIMESTAMP_COUNTER),
            block_number=None,
        )
        entry.score = score if score is not None else score_entry(entry)
        db_session.add(entry)
        db_session.flush()
        return entry

    return _make_entry
