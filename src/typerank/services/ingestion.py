"""Ledger-to-leaderboard ingestion.

Every completion event, whether replayed by a backfill pass or delivered by
the live subscription, goes through the same pipeline::

    received -> validated -> normalized -> dedup-checked -> stored
                    |
                    +-> dropped (missing, incomplete or invalid session)

The sync cursor only moves after a whole chunk has been stored, so a failed
pass is simply repeated; duplicates from the repeat are absorbed by the
``(player_address, mode, timestamp)`` identity.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from enum import Enum

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from typerank.core.errors import (
    LedgerDisabledError,
    LedgerError,
    MalformedRecordError,
    ValidationError,
)
from typerank.core.settings import settings
from typerank.db.session import SessionLocal
from typerank.db.time import unix_seconds, utcnow
from typerank.game.modes import GameMode
from typerank.models import LeaderboardEntry, SyncCursor
from typerank.services.ledger import (
    ZERO_ADDRESS,
    CompletionEvent,
    LedgerSource,
    LiveSubscription,
    SessionRecord,
)
from typerank.services.scoring import score_entry

logger = logging.getLogger(__name__)


def _wall_clock_seconds() -> int:
    return unix_seconds(utcnow())


class IngestOutcome(Enum):
    STORED = "stored"
    DUPLICATE = "duplicate"
    DROPPED = "dropped"


@dataclass
class EntryData:
    """A normalized leaderboard row, not yet persisted."""

    player_address: str
    mode: int
    session_id: int | None
    words_typed: int
    correct_words: int
    mistakes: int
    correct_characters: int
    accuracy_basis_points: int
    words_per_minute: int
    duration_seconds: int
    timestamp: int
    block_number: int | None
    score: float = 0.0


@dataclass
class BackfillReport:
    from_block: int | None = None
    to_block: int | None = None
    chunks: int = 0
    stored: int = 0
    duplicates: int = 0
    dropped: int = 0

    def record(self, outcome: IngestOutcome) -> None:
        if outcome is IngestOutcome.STORED:
            self.stored += 1
        elif outcome is IngestOutcome.DUPLICATE:
            self.duplicates += 1
        else:
            self.dropped += 1


@dataclass
class IngestionMetrics:
    passes: int = 0
    failed_passes: int = 0
    live_events: int = 0
    outcomes: dict[str, int] = field(default_factory=lambda: {o.value: 0 for o in IngestOutcome})
    last_error: str | None = None


class LeaderboardIngestor:
    """Turns ledger completion events into leaderboard rows, exactly once in effect."""

    def __init__(
        self,
        ledger: LedgerSource,
        session_factory: sessionmaker[Session] | Callable[[], Session] | None = None,
        *,
        source: str = "default",
        chunk_size: int | None = None,
        lookback: int | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.ledger = ledger
        self.session_factory = session_factory or SessionLocal
        self.source = source
        self.chunk_size = max(1, chunk_size if chunk_size is not None else settings.ingest_chunk_size)
        self.lookback = max(0, lookback if lookback is not None else settings.ingest_lookback_blocks)
        self.clock = clock or _wall_clock_seconds
        self.metrics = IngestionMetrics()

        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()
        self._live: LiveSubscription | None = None

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
        finally:
            db.close()

    # -- pipeline -----------------------------------------------------------------

    async def validate(self, event: CompletionEvent) -> SessionRecord:
        """Fetch and check the session an event refers to.

        Raises:
            MalformedRecordError: the record is missing, incomplete or invalid.
            TransientUpstreamError: the ledger could not be asked.
        """
        if not event.player or event.player.lower() == ZERO_ADDRESS:
            raise MalformedRecordError("Event has no player", session_id=event.session_id)

        record = await self.ledger.get_session(event.player, event.session_id)
        if record is None or record.player.lower() == ZERO_ADDRESS:
            raise MalformedRecordError(
                "Skipping empty session", player=event.player, session_id=event.session_id
            )
        try:
            GameMode.from_value(record.mode)
        except ValidationError as err:
            raise MalformedRecordError(
                str(err), player=event.player, session_id=event.session_id
            ) from err
        if not record.completed:
            raise MalformedRecordError(
                "Skipping incomplete session", player=event.player, session_id=event.session_id
            )
        if record.words_typed <= 0 or record.duration <= 0 or record.wpm <= 0:
            raise MalformedRecordError(
                "Skipping invalid session metrics", player=event.player, session_id=event.session_id
            )
        return record

    def normalize(self, record: SessionRecord, event: CompletionEvent) -> EntryData:
        """Map a validated record onto the leaderboard row shape.

        The timestamp is the record's end time, then the event's, and only
        then the local clock (in seconds).
        """
        timestamp = record.end_time or event.timestamp
        if not timestamp:
            timestamp = self.clock()
            logger.warning(
                "No ledger timestamp for %s session %s; using local time %s",
                record.player,
                record.session_id,
                timestamp,
            )

        correct_characters = record.correct_characters
        if correct_characters is None:
            correct_characters = record.correct_words

        entry = EntryData(
            player_address=record.player.lower(),
            mode=record.mode,
            session_id=record.session_id,
            words_typed=record.words_typed,
            correct_words=record.correct_words,
            mistakes=record.mistakes,
            correct_characters=correct_characters,
            accuracy_basis_points=record.accuracy,
            words_per_minute=record.wpm,
            duration_seconds=record.duration,
            timestamp=int(timestamp),
            block_number=event.block_number,
        )
        entry.score = score_entry(entry)
        return entry

    def store(self, db: Session, entry: EntryData) -> bool:
        """Insert ``entry`` unless its identity is already stored.

        The check and insert commit together. Returns False for a duplicate.
        """
        existing = db.execute(
            select(LeaderboardEntry.id).where(
                LeaderboardEntry.player_address == entry.player_address,
                LeaderboardEntry.mode == entry.mode,
                LeaderboardEntry.timestamp == entry.timestamp,
            )
        ).first()
        if existing is not None:
            return False

        db.add(LeaderboardEntry(**asdict(entry)))
        try:
            db.commit()
        except IntegrityError:
            # Lost a race with the other delivery path.
            db.rollback()
            return False
        except SQLAlchemyError:
            db.rollback()
            raise
        return True

    def _store_in_new_session(self, entry: EntryData) -> bool:
        with self._session() as db:
            return self.store(db, entry)

    async def process_event(self, event: CompletionEvent) -> IngestOutcome:
        """Run one event through the whole pipeline.

        Malformed records are dropped and logged. Ledger and store failures
        propagate so the caller can retry.
        """
        try:
            record = await self.validate(event)
            entry = self.normalize(record, event)
        except MalformedRecordError as e:
            logger.warning("%s: player=%s session=%s", e, e.player, e.session_id)
            outcome = IngestOutcome.DROPPED
        except (TypeError, ValueError) as e:
            logger.error(
                "Dropping undecodable session %s for %s: %s",
                event.session_id,
                event.player,
                e,
                exc_info=True,
            )
            outcome = IngestOutcome.DROPPED
        else:
            stored = await asyncio.to_thread(self._store_in_new_session, entry)
            outcome = IngestOutcome.STORED if stored else IngestOutcome.DUPLICATE

        self.metrics.outcomes[outcome.value] += 1
        return outcome

    # -- cursor -------------------------------------------------------------------

    def get_cursor(self) -> int | None:
        with self._session() as db:
            cursor = db.get(SyncCursor, self.source)
            return cursor.last_processed_sequence if cursor is not None else None

    def _advance_cursor(self, sequence: int) -> None:
        with self._session() as db:
            cursor = db.get(SyncCursor, self.source)
            if cursor is None:
                db.add(SyncCursor(source=self.source, last_processed_sequence=sequence))
            elif sequence > cursor.last_processed_sequence:
                cursor.last_processed_sequence = sequence
            else:
                return
            db.commit()

    # -- backfill -----------------------------------------------------------------

    async def backfill(self) -> BackfillReport:
        """Replay completion events from the cursor up to the current height.

        Raises:
            LedgerError: the ledger failed; the cursor is left where it was.
            SQLAlchemyError: a store failed; the cursor is left where it was.
        """
        report = BackfillReport()
        height = await self.ledger.get_block_height()
        cursor = await asyncio.to_thread(self.get_cursor)
        start = cursor + 1 if cursor is not None else max(0, height - self.lookback)
        if start > height:
            return report

        report.from_block = start
        logger.info("Backfilling %s from block %s to %s", self.source, start, height)
        for chunk_start in range(start, height + 1, self.chunk_size):
            chunk_end = min(chunk_start + self.chunk_size - 1, height)
            events = await self.ledger.get_completion_events(chunk_start, chunk_end)
            for event in events:
                report.record(await self.process_event(event))
            await asyncio.to_thread(self._advance_cursor, chunk_end)
            report.chunks += 1
            report.to_block = chunk_end

        logger.info(
            "Backfill of %s complete: stored=%s duplicates=%s dropped=%s",
            self.source,
            report.stored,
            report.duplicates,
            report.dropped,
        )
        return report

    async def start(self) -> None:
        """Start the periodic backfill loop."""
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self.run_forever())

    async def stop(self) -> None:
        """Stop the backfill loop and the live subscription."""
        await self.detach_live()
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    async def run_forever(self) -> None:
        interval = max(0.1, float(settings.ingest_interval_seconds))
        backoff_max = max(interval, float(settings.ingest_backoff_max_seconds))
        failures = 0

        while not self._stopping.is_set():
            self.metrics.passes += 1
            try:
                await self.backfill()
            except LedgerDisabledError:
                return
            except LedgerError as e:
                logger.warning("Ingestion pass for %s failed upstream: %s", self.source, e)
                self.metrics.last_error = str(e)
                failures += 1
            except SQLAlchemyError as e:
                logger.error("Ingestion pass for %s failed to store: %s", self.source, e, exc_info=True)
                self.metrics.last_error = str(e)
                failures += 1
            except (OSError, ConnectionError, TimeoutError) as e:
                logger.warning("Ingestion pass for %s hit a network error: %s", self.source, e)
                self.metrics.last_error = str(e)
                failures += 1
            except (ValueError, TypeError, KeyError, AttributeError) as e:
                logger.error("Ingestion pass for %s data processing error: %s", self.source, e, exc_info=True)
                self.metrics.last_error = f"{type(e).__name__}: {e}"
                failures += 1
            else:
                failures = 0

            if failures:
                self.metrics.failed_passes += 1
                delay = min(interval * 2**failures, backoff_max)
            else:
                delay = interval
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=delay)
            except asyncio.TimeoutError:
                continue

    # -- live ---------------------------------------------------------------------

    @property
    def live_attached(self) -> bool:
        return self._live is not None and self._live.attached

    async def _on_live_event(self, event: CompletionEvent) -> None:
        self.metrics.live_events += 1
        try:
            await self.process_event(event)
        except LedgerError as e:
            logger.warning("Live event for %s not ingested; backfill will retry: %s", event.player, e)
        except SQLAlchemyError as e:
            logger.error("Live event for %s failed to store: %s", event.player, e, exc_info=True)

    def attach_live(self, *, poll_interval: float | None = None) -> None:
        """Start following new events. No-op while already attached."""
        if self.live_attached:
            return
        self._live = LiveSubscription(self.ledger, self._on_live_event, poll_interval=poll_interval)
        self._live.start()

    async def detach_live(self) -> None:
        """Stop following new events. Safe to call when not attached."""
        live, self._live = self._live, None
        if live is not None:
            await live.detach()
