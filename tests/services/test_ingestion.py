"""Tests for ledger-to-leaderboard ingestion."""

from __future__ import annotations

import asyncio

import httpx
import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from typerank.core.errors import TransientUpstreamError
from typerank.core.ledger_config import LedgerConfig
from typerank.models import LeaderboardEntry, SyncCursor
from typerank.services.ingestion import IngestOutcome, LeaderboardIngestor
from typerank.services.ledger import ZERO_ADDRESS, CompletionEvent, LedgerClient, SessionRecord
from typerank.services.scoring import calculate_score

PLAYER = "0x" + "Ab" * 20
OTHER = "0x" + "cd" * 20
BASE_TIME = 1_760_000_000


class FakeLedger:
    """In-memory ledger with the surface the ingestor uses."""

    def __init__(self, height: int = 100) -> None:
        self.height = height
        self.events: list[CompletionEvent] = []
        self.records: dict[tuple[str, int], SessionRecord] = {}
        self.event_calls: list[tuple[int, int]] = []
        self.fail_events_from: int | None = None
        self.fail_sessions = False

    def add_game(
        self,
        player: str,
        session_id: int,
        *,
        block: int,
        mode: int = 0,
        wpm: int = 60,
        words_typed: int = 30,
        completed: bool = True,
        end_time: int | None = -1,
        event_timestamp: int | None = None,
        correct_characters: int | None = 140,
    ) -> CompletionEvent:
        self.records[(player.lower(), session_id)] = SessionRecord(
            player=player,
            session_id=session_id,
            mode=mode,
            words_typed=words_typed,
            correct_words=words_typed - 2,
            mistakes=2,
            accuracy=9333,
            wpm=wpm,
            duration=30,
            completed=completed,
            end_time=BASE_TIME + session_id if end_time == -1 else end_time,
            correct_characters=correct_characters,
        )
        event = CompletionEvent(
            player=player,
            session_id=session_id,
            words_typed=words_typed,
            accuracy=9333,
            wpm=wpm,
            timestamp=event_timestamp,
            block_number=block,
        )
        self.events.append(event)
        return event

    async def get_block_height(self) -> int:
        return self.height

    async def get_completion_events(self, from_block: int, to_block: int) -> list[CompletionEvent]:
        self.event_calls.append((from_block, to_block))
        if self.fail_events_from is not None and from_block >= self.fail_events_from:
            raise TransientUpstreamError("gateway down")
        return [e for e in self.events if from_block <= e.block_number <= to_block]

    async def get_session(self, player: str, session_id: int) -> SessionRecord | None:
        if self.fail_sessions:
            raise TransientUpstreamError("gateway down")
        return self.records.get((player.lower(), session_id))

    async def get_player_sessions(self, player: str) -> list[SessionRecord]:
        return []

    async def get_minted_achievements(self, player: str) -> list[bool]:
        return []


async def wait_until(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate() and loop.time() < deadline:
        await asyncio.sleep(0.01)


def count_entries(session_factory: sessionmaker[Session]) -> int:
    with session_factory() as db:
        return db.scalar(select(func.count()).select_from(LeaderboardEntry))


def make_ingestor(ledger: FakeLedger, session_factory, **kwargs) -> LeaderboardIngestor:
    kwargs.setdefault("chunk_size", 1000)
    kwargs.setdefault("lookback", 1000)
    return LeaderboardIngestor(ledger, session_factory, source="test", **kwargs)


@pytest.mark.asyncio
async def test_event_is_stored_once(session_factory) -> None:
    ledger = FakeLedger()
    event = ledger.add_game(PLAYER, 1, block=10)
    ingestor = make_ingestor(ledger, session_factory)

    assert await ingestor.process_event(event) is IngestOutcome.STORED
    assert await ingestor.process_event(event) is IngestOutcome.DUPLICATE
    assert count_entries(session_factory) == 1
    assert ingestor.metrics.outcomes == {"stored": 1, "duplicate": 1, "dropped": 0}


@pytest.mark.asyncio
async def test_identity_is_player_mode_and_timestamp(session_factory) -> None:
    ledger = FakeLedger()
    first = ledger.add_game(PLAYER, 1, block=10, end_time=BASE_TIME)
    same_identity = ledger.add_game(PLAYER, 2, block=11, end_time=BASE_TIME)
    other_mode = ledger.add_game(PLAYER, 3, block=12, end_time=BASE_TIME, mode=2)
    ingestor = make_ingestor(ledger, session_factory)

    assert await ingestor.process_event(first) is IngestOutcome.STORED
    assert await ingestor.process_event(same_identity) is IngestOutcome.DUPLICATE
    assert await ingestor.process_event(other_mode) is IngestOutcome.STORED


@pytest.mark.asyncio
async def test_normalized_entry(session_factory) -> None:
    ledger = FakeLedger()
    event = ledger.add_game(PLAYER, 7, block=10, correct_characters=None)
    ingestor = make_ingestor(ledger, session_factory)

    await ingestor.process_event(event)

    with session_factory() as db:
        entry = db.scalars(select(LeaderboardEntry)).one()
    assert entry.player_address == PLAYER.lower()
    assert entry.session_id == 7
    assert entry.timestamp == BASE_TIME + 7
    assert entry.block_number == 10
    assert entry.correct_characters == entry.correct_words == 28
    assert entry.score == pytest.approx(calculate_score(93.33, 2, 30, 30))


@pytest.mark.asyncio
async def test_timestamp_falls_back_to_event_then_clock(session_factory) -> None:
    ledger = FakeLedger()
    from_event = ledger.add_game(PLAYER, 1, block=10, end_time=None, event_timestamp=BASE_TIME + 500)
    from_clock = ledger.add_game(PLAYER, 2, block=11, end_time=None)
    ingestor = make_ingestor(ledger, session_factory, clock=lambda: 1_234_567)

    await ingestor.process_event(from_event)
    await ingestor.process_event(from_clock)

    with session_factory() as db:
        timestamps = sorted(db.scalars(select(LeaderboardEntry.timestamp)))
    assert timestamps == [1_234_567, BASE_TIME + 500]


@pytest.mark.asyncio
async def test_malformed_events_are_dropped(session_factory) -> None:
    ledger = FakeLedger()
    incomplete = ledger.add_game(PLAYER, 1, block=10, completed=False)
    zero_wpm = ledger.add_game(PLAYER, 2, block=11, wpm=0)
    no_words = ledger.add_game(PLAYER, 3, block=12, words_typed=0)
    unknown_mode = ledger.add_game(PLAYER, 5, block=15, mode=9)
    missing = CompletionEvent(PLAYER, 99, 10, 10000, 50, None, 13)
    no_player = CompletionEvent(ZERO_ADDRESS, 4, 10, 10000, 50, None, 14)
    ingestor = make_ingestor(ledger, session_factory)

    for event in (incomplete, zero_wpm, no_words, unknown_mode, missing, no_player):
        assert await ingestor.process_event(event) is IngestOutcome.DROPPED

    assert count_entries(session_factory) == 0
    assert ingestor.metrics.outcomes["dropped"] == 6


@pytest.mark.asyncio
async def test_ledger_failure_propagates_from_process_event(session_factory) -> None:
    ledger = FakeLedger()
    event = ledger.add_game(PLAYER, 1, block=10)
    ledger.fail_sessions = True
    ingestor = make_ingestor(ledger, session_factory)

    with pytest.raises(TransientUpstreamError):
        await ingestor.process_event(event)


@pytest.mark.asyncio
async def test_cold_start_scans_lookback_in_chunks(session_factory) -> None:
    ledger = FakeLedger(height=1000)
    ledger.add_game(PLAYER, 1, block=850)
    ledger.add_game(PLAYER, 2, block=920)
    ledger.add_game(OTHER, 3, block=1000)
    ingestor = make_ingestor(ledger, session_factory, chunk_size=50, lookback=100)

    report = await ingestor.backfill()

    assert ledger.event_calls == [(900, 949), (950, 999), (1000, 1000)]
    assert (report.from_block, report.to_block, report.chunks) == (900, 1000, 3)
    assert report.stored == 2
    assert ingestor.get_cursor() == 1000


@pytest.mark.asyncio
async def test_backfill_resumes_after_cursor(session_factory) -> None:
    ledger = FakeLedger(height=100)
    ledger.add_game(PLAYER, 1, block=50)
    ingestor = make_ingestor(ledger, session_factory)

    await ingestor.backfill()
    ledger.event_calls.clear()

    report = await ingestor.backfill()
    assert report.chunks == 0
    assert ledger.event_calls == []

    ledger.height = 105
    ledger.add_game(PLAYER, 2, block=103)
    report = await ingestor.backfill()
    assert ledger.event_calls == [(101, 105)]
    assert report.stored == 1
    assert ingestor.get_cursor() == 105


@pytest.mark.asyncio
async def test_ledger_failure_keeps_cursor_at_last_complete_chunk(session_factory) -> None:
    ledger = FakeLedger(height=99)
    ledger.add_game(PLAYER, 1, block=10)
    ledger.add_game(PLAYER, 2, block=60)
    ledger.fail_events_from = 50
    ingestor = make_ingestor(ledger, session_factory, chunk_size=50)

    with pytest.raises(TransientUpstreamError):
        await ingestor.backfill()

    assert ingestor.get_cursor() == 49
    assert count_entries(session_factory) == 1


@pytest.mark.asyncio
async def test_interrupted_chunk_is_replayed_without_duplicates(session_factory, mocker) -> None:
    ledger = FakeLedger(height=100)
    for session_id in range(1, 11):
        ledger.add_game(PLAYER, session_id, block=session_id)
    ingestor = make_ingestor(ledger, session_factory)

    original_store = ingestor.store
    calls = 0

    def flaky_store(db, entry):
        nonlocal calls
        calls += 1
        if calls == 5:
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))
        return original_store(db, entry)

    store = mocker.patch.object(ingestor, "store", side_effect=flaky_store)

    with pytest.raises(OperationalError):
        await ingestor.backfill()
    assert ingestor.get_cursor() is None
    assert count_entries(session_factory) == 4

    report = await ingestor.backfill()

    assert (report.stored, report.duplicates) == (6, 4)
    assert store.call_count == 15
    assert count_entries(session_factory) == 10
    assert ingestor.get_cursor() == 100


def test_cursor_never_moves_backwards(session_factory) -> None:
    ingestor = make_ingestor(FakeLedger(), session_factory)

    ingestor._advance_cursor(10)
    ingestor._advance_cursor(5)

    with session_factory() as db:
        assert db.get(SyncCursor, "test").last_processed_sequence == 10


@pytest.mark.asyncio
async def test_run_forever_records_failures_and_stops(session_factory) -> None:
    ledger = FakeLedger()

    async def unavailable() -> int:
        raise TransientUpstreamError("gateway down")

    ledger.get_block_height = unavailable
    ingestor = make_ingestor(ledger, session_factory)

    await ingestor.start()
    await wait_until(lambda: ingestor.metrics.last_error is not None)
    await ingestor.stop()

    assert ingestor.metrics.passes == 1
    assert ingestor.metrics.failed_passes == 1
    assert ingestor.metrics.last_error == "gateway down"



@pytest.mark.asyncio
async def test_run_forever_survives_a_height_reply_without_height(session_factory) -> None:
    ledger = LedgerClient(
        LedgerConfig(rpc_urls=["https://primary.example"], game_contract=OTHER),
        enabled=True,
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"unexpected": 1})),
    )
    ingestor = make_ingestor(ledger, session_factory)

    await ingestor.start()
    await wait_until(lambda: ingestor.metrics.last_error is not None)

    assert not ingestor._task.done()
    assert "no usable height" in ingestor.metrics.last_error
    await ingestor.stop()
    await ledger.close()


@pytest.mark.asyncio
async def test_run_forever_survives_unexpected_data_errors(session_factory) -> None:
    ledger = FakeLedger()

    async def garbled() -> int:
        raise KeyError("height")

    ledger.get_block_height = garbled
    ingestor = make_ingestor(ledger, session_factory)

    await ingestor.start()
    await wait_until(lambda: ingestor.metrics.last_error is not None)

    assert not ingestor._task.done()
    assert ingestor.metrics.failed_passes == 1
    assert ingestor.metrics.last_error == "KeyError: 'height'"
    await ingestor.stop()

@pytest.mark.asyncio
async def test_periodic_loop_ingests_history(session_factory) -> None:
    ledger = FakeLedger()
    ledger.add_game(PLAYER, 1, block=10)
    ingestor = make_ingestor(ledger, session_factory)

    await ingestor.start()
    await wait_until(lambda: ingestor.metrics.outcomes["stored"] == 1)
    await ingestor.stop()
    await ingestor.stop()

    assert count_entries(session_factory) == 1


@pytest.mark.asyncio
async def test_live_attach_and_detach_are_idempotent(session_factory) -> None:
    ingestor = make_ingestor(FakeLedger(), session_factory)

    await ingestor.detach_live()
    ingestor.attach_live(poll_interval=0.01)
    first = ingestor._live
    ingestor.attach_live(poll_interval=0.01)
    assert ingestor._live is first
    assert ingestor.live_attached

    await ingestor.detach_live()
    await ingestor.detach_live()
    assert not ingestor.live_attached


@pytest.mark.asyncio
async def test_live_event_failures_are_absorbed(session_factory) -> None:
    ledger = FakeLedger()
    event = ledger.add_game(PLAYER, 1, block=10)
    ledger.fail_sessions = True
    ingestor = make_ingestor(ledger, session_factory)

    await ingestor._on_live_event(event)
    ledger.fail_sessions = False
    await ingestor._on_live_event(event)

    assert ingestor.metrics.live_events == 2
    assert count_entries(session_factory) == 1
