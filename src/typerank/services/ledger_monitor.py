"""Supervised health check for the ledger gateway connection.

The monitor owns the connected/disconnected state. Observers register
callbacks and are told about transitions only, never about every check.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from typerank.core.errors import LedgerDisabledError, LedgerError
from typerank.core.settings import settings
from typerank.services.ledger import LedgerClient

logger = logging.getLogger(__name__)

Observer = Callable[[], Awaitable[None] | None]


class ConnectionState(Enum):
    UNKNOWN = "unknown"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class LedgerConnectionMonitor:
    """Periodically checks the gateway and fails over when it stops answering."""

    def __init__(self, client: LedgerClient, *, interval: float | None = None) -> None:
        self.client = client
        self.interval = max(
            0.01,
            float(interval if interval is not None else settings.ledger_health_interval_seconds),
        )
        self.state = ConnectionState.UNKNOWN
        self._on_connected: list[Observer] = []
        self._on_disconnected: list[Observer] = []
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    def on_connected(self, callback: Observer) -> None:
        self._on_connected.append(callback)

    def on_disconnected(self, callback: Observer) -> None:
        self._on_disconnected.append(callback)

    async def _notify(self, observers: list[Observer]) -> None:
        for callback in observers:
            try:
                result = callback()
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.error("Ledger connection observer failed", exc_info=True)

    async def _transition(self, new_state: ConnectionState) -> None:
        if new_state is self.state:
            return
        previous, self.state = self.state, new_state
        logger.info("Ledger connection %s -> %s", previous.value, new_state.value)
        if new_state is ConnectionState.CONNECTED:
            await self._notify(self._on_connected)
        else:
            await self._notify(self._on_disconnected)

    async def check_once(self) -> ConnectionState:
        """Check the gateway once, failing over to the next URL on error.

        A URL whose circuit breaker is cooling down is abandoned without
        another request.
        """
        if self.client.circuit_open:
            logger.warning("Ledger circuit open on %s; failing over", self.client.base_url)
            await self._transition(ConnectionState.DISCONNECTED)
            await self.client.switch_endpoint()
            return self.state
        try:
            await self.client.get_block_height()
        except LedgerDisabledError:
            raise
        except LedgerError as e:
            logger.warning("Ledger health check failed on %s: %s", self.client.base_url, e)
            await self._transition(ConnectionState.DISCONNECTED)
            await self.client.switch_endpoint()
        else:
            await self._transition(ConnectionState.CONNECTED)
        return self.state

    async def start(self) -> None:
        """Start the background health-check loop. No-op if already running."""
        if not self.client.enabled:
            return

        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background health-check loop. Safe to call repeatedly."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await self.check_once()
            except LedgerDisabledError:
                return
            except (OSError, ConnectionError, TimeoutError) as e:
                logger.warning("Ledger health check network error: %s", e)
                await self._transition(ConnectionState.DISCONNECTED)
            except (ValueError, TypeError, KeyError, AttributeError) as e:
                logger.error("Ledger health check data processing error: %s", e, exc_info=True)
                await self._transition(ConnectionState.DISCONNECTED)
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                continue
