"""Client for the ledger gateway.

The gateway indexes the game contract and exposes it over HTTP:

- completion events over a block range
- full session detail by (player, session id)
- a player's session history and minted-achievement flags
- the current block height

This module provides the LedgerClient class, a circuit breaker and health
record per gateway URL, failover across the configured URLs, and the
polling LiveSubscription used to follow new completion events.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from collections import defaultdict
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

import httpx
from jose import jwt

from typerank.core.errors import LedgerDisabledError, MalformedRecordError, TransientUpstreamError
from typerank.core.ledger_config import LedgerConfig
from typerank.core.settings import settings

# Configure logger for this module
logger = logging.getLogger(__name__)

# HTTP status codes
HTTP_OK = 200
HTTP_NOT_FOUND = 404
HTTP_TOO_MANY_REQUESTS = 429
HTTP_INTERNAL_SERVER_ERROR = 500

ZERO_ADDRESS = "0x" + "0" * 40


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class EndpointHealth:
    """Request outcomes for one gateway URL since it became active."""

    url: str | None
    requests: int = 0
    failures: int = 0
    latency_total: float = 0.0
    failures_by_kind: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    last_error: str | None = None

    def record(self, latency: float, error_kind: str | None = None, error: str | None = None) -> None:
        self.requests += 1
        self.latency_total += latency
        if error_kind is not None:
            self.failures += 1
            self.failures_by_kind[error_kind] += 1
            self.last_error = error

    @property
    def success_rate(self) -> float:
        if not self.requests:
            return 0.0
        return (self.requests - self.failures) / self.requests * 100

    @property
    def average_latency(self) -> float:
        return self.latency_total / self.requests if self.requests else 0.0


@dataclass
class GatewayBreaker:
    """Stops calling a gateway URL after repeated failures.

    After ``cooldown`` seconds one trial request is let through; enough
    consecutive successes close the circuit again. The connection monitor
    reads ``state`` to fail over without waiting for the cooldown.
    """

    failure_threshold: int = 5
    cooldown: float = 30.0
    recovery_successes: int = 2
    clock: Callable[[], float] = time.monotonic

    state: CircuitState = CircuitState.CLOSED
    consecutive_failures: int = 0
    trial_successes: int = 0
    opened_at: float | None = None

    def allows_request(self) -> bool:
        if self.state is CircuitState.OPEN and self.retry_after() == 0:
            self.state = CircuitState.HALF_OPEN
            self.trial_successes = 0
        return self.state is not CircuitState.OPEN

    def retry_after(self) -> float:
        """Seconds until an open circuit lets a trial request through."""
        if self.state is not CircuitState.OPEN or self.opened_at is None:
            return 0.0
        return max(0.0, self.opened_at + self.cooldown - self.clock())

    def succeeded(self) -> None:
        self.consecutive_failures = 0
        if self.state is CircuitState.HALF_OPEN:
            self.trial_successes += 1
            if self.trial_successes >= self.recovery_successes:
                self.state = CircuitState.CLOSED

    def failed(self) -> None:
        self.consecutive_failures += 1
        if self.state is CircuitState.HALF_OPEN or self.consecutive_failures >= self.failure_threshold:
            self.state = CircuitState.OPEN
            self.opened_at = self.clock()


@dataclass(frozen=True)
class CompletionEvent:
    """A "game completed" notification as emitted by the contract."""

    player: str
    session_id: int
    words_typed: int
    accuracy: int
    wpm: int
    timestamp: int | None
    block_number: int


@dataclass(frozen=True)
class SessionRecord:
    """Full session detail as stored on the ledger.

    ``accuracy`` is in basis points (10000 == 100.00%).
    """

    player: str
    session_id: int
    mode: int
    words_typed: int
    correct_words: int
    mistakes: int
    accuracy: int
    wpm: int
    duration: int
    completed: bool
    end_time: int | None = None
    correct_characters: int | None = None


class LedgerSource(Protocol):
    """What the ingestor and achievement service need from the ledger."""

    async def get_block_height(self) -> int: ...

    async def get_completion_events(self, from_block: int, to_block: int) -> list[CompletionEvent]: ...

    async def get_session(self, player: str, session_id: int) -> SessionRecord | None: ...

    async def get_player_sessions(self, player: str) -> list[SessionRecord]: ...

    async def get_minted_achievements(self, player: str) -> list[bool]: ...


def _as_int(payload: Mapping[str, Any], key: str) -> int:
    value = payload.get(key)
    if value is None or isinstance(value, bool):
        raise KeyError(key)
    return int(value)


def _optional_int(payload: Mapping[str, Any], key: str) -> int | None:
    value = payload.get(key)
    if value in (None, "", 0, "0"):
        return None
    return int(value)


def parse_completion_event(payload: Mapping[str, Any]) -> CompletionEvent:
    return CompletionEvent(
        player=str(payload["player"]),
        session_id=_as_int(payload, "session_id"),
        words_typed=_as_int(payload, "words_typed"),
        accuracy=_as_int(payload, "accuracy"),
        wpm=int(payload.get("wpm") or 0),
        timestamp=_optional_int(payload, "timestamp"),
        block_number=_as_int(payload, "block_number"),
    )


def parse_session_record(payload: Mapping[str, Any]) -> SessionRecord:
    """Decode a gateway session document.

    Raises:
        MalformedRecordError: if required fields are missing or not numeric.
    """
    try:
        correct_characters = payload.get("correct_characters")
        return SessionRecord(
            player=str(payload["player"]),
            session_id=_as_int(payload, "session_id"),
            mode=_as_int(payload, "mode"),
            words_typed=_as_int(payload, "words_typed"),
            correct_words=_as_int(payload, "correct_words"),
            mistakes=_as_int(payload, "mistakes"),
            accuracy=_as_int(payload, "accuracy"),
            wpm=_as_int(payload, "wpm"),
            duration=_as_int(payload, "duration"),
            completed=bool(payload.get("completed", False)),
            end_time=_optional_int(payload, "end_time"),
            correct_characters=int(correct_characters) if correct_characters is not None else None,
        )
    except (KeyError, TypeError, ValueError) as err:
        raise MalformedRecordError(
            f"Unreadable session record: {err}",
            player=payload.get("player"),
            session_id=payload.get("session_id"),
        ) from err


class LedgerClient:
    """HTTP client wrapper for the ledger gateway."""

    def __init__(
        self,
        config: LedgerConfig | None,
        *,
        enabled: bool | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._enabled = bool(config) and (settings.ledger_enabled if enabled is None else enabled)
        self._transport = transport
        self._endpoint_index = 0
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()
        self._breakers: dict[str | None, GatewayBreaker] = {}
        self._health: dict[str | None, EndpointHealth] = {}
        self.failovers = 0
        self.last_height: int | None = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def base_url(self) -> str | None:
        if self.config is None:
            return None
        return self.config.rpc_urls[self._endpoint_index % len(self.config.rpc_urls)]

    @property
    def source(self) -> str:
        return self.config.source if self.config else "default"

    async def _ensure_client(self) -> httpx.AsyncClient:
        if not self.enabled:
            raise LedgerDisabledError("Ledger gateway is not enabled")

        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.base_url or "",
                    timeout=httpx.Timeout(settings.ledger_http_timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    def _breaker(self, url: str | None = None) -> GatewayBreaker:
        url = url or self.base_url
        if url not in self._breakers:
            self._breakers[url] = GatewayBreaker(
                failure_threshold=settings.ledger_breaker_failure_threshold,
                cooldown=settings.ledger_breaker_cooldown_seconds,
            )
        return self._breakers[url]

    def _endpoint_health(self) -> EndpointHealth:
        url = self.base_url
        if url not in self._health:
            self._health[url] = EndpointHealth(url)
        return self._health[url]

    @property
    def circuit_state(self) -> CircuitState:
        return self._breaker().state

    @property
    def circuit_open(self) -> bool:
        """True while the active URL is cooling down after repeated failures."""
        return self._breaker().retry_after() > 0

    async def switch_endpoint(self) -> str | None:
        """Fail over to the next configured gateway URL.

        URLs whose circuit is still cooling down are skipped unless every
        URL is in that state, in which case the rotation simply advances.
        """
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None
            if self.config is not None:
                urls = self.config.rpc_urls
                for step in range(1, len(urls) + 1):
                    candidate = (self._endpoint_index + step) % len(urls)
                    if self._breaker(urls[candidate]).retry_after() == 0:
                        break
                else:
                    candidate = (self._endpoint_index + 1) % len(urls)
                self._endpoint_index = candidate
            self.failovers += 1
        logger.info("Ledger gateway switched to %s", self.base_url)
        return self.base_url

    def _build_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if settings.ledger_shared_secret:
            now = int(time.time())
            payload = {
                "iss": settings.app_name,
                "aud": settings.ledger_audience,
                "iat": now,
                "exp": now + max(1, settings.ledger_token_ttl_seconds),
                "jti": secrets.token_hex(8),
            }
            token = jwt.encode(payload, settings.ledger_shared_secret, algorithm="HS256")
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _get(self, path: str, params: Mapping[str, Any] | None = None) -> httpx.Response:
        breaker = self._breaker()
        if not breaker.allows_request():
            raise TransientUpstreamError(
                f"Ledger circuit breaker is open for {self.base_url}; retry in {breaker.retry_after():.1f}s"
            )

        client = await self._ensure_client()
        health = self._endpoint_health()
        start_time = time.monotonic()
        error_kind: str | None = None
        error: str | None = None

        try:
            response = await client.get(path, params=params, headers=self._build_headers())
            if response.status_code == HTTP_TOO_MANY_REQUESTS:
                error_kind, error = "rate_limited", "Ledger gateway is rate limiting requests"
                raise TransientUpstreamError(error)
            if response.status_code >= HTTP_INTERNAL_SERVER_ERROR:
                error_kind = f"http_{response.status_code}"
                error = f"Ledger gateway responded with {response.status_code}"
                raise TransientUpstreamError(error)
        except httpx.HTTPError as exc:
            error_kind, error = "network_error", f"Ledger request failed: {exc}"
            raise TransientUpstreamError(error) from exc
        finally:
            health.record(time.monotonic() - start_time, error_kind, error)
            if error_kind is not None:
                breaker.failed()

        breaker.succeeded()
        return response

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        if response.status_code != HTTP_OK:
            raise TransientUpstreamError(
                f"Unexpected ledger response ({response.status_code}) for {response.request.url.path}"
            )
        try:
            body = response.json()
        except ValueError as err:
            raise TransientUpstreamError("Ledger gateway returned invalid JSON") from err
        if not isinstance(body, dict):
            raise TransientUpstreamError("Ledger gateway returned an unexpected document")
        return body

    @staticmethod
    def _items(body: Mapping[str, Any], key: str) -> list[Any]:
        items = body.get(key)
        if items is None:
            return []
        if not isinstance(items, list):
            raise TransientUpstreamError(f"Ledger gateway returned a non-list {key!r}")
        return items

    def _require_config(self) -> LedgerConfig:
        if self.config is None:
            raise LedgerDisabledError("Ledger gateway is not configured")
        return self.config

    async def get_block_height(self) -> int:
        body = self._json(await self._get("/height"))
        try:
            height = int(body["height"])
        except (KeyError, TypeError, ValueError) as err:
            raise TransientUpstreamError(f"Ledger gateway returned no usable height: {body!r}") from err
        self.last_height = height
        return height

    async def get_completion_events(self, from_block: int, to_block: int) -> list[CompletionEvent]:
        """Return completion events in ``[from_block, to_block]``, in ledger order."""
        config = self._require_config()
        body = self._json(
            await self._get(
                f"/events/{config.completion_event}",
                params={
                    "contract": config.game_contract,
                    "from_block": from_block,
                    "to_block": to_block,
                },
            )
        )
        events: list[CompletionEvent] = []
        for item in self._items(body, "events"):
            try:
                events.append(parse_completion_event(item))
            except (KeyError, TypeError, ValueError) as err:
                logger.warning("Skipping undecodable completion event %r: %s", item, err)
        events.sort(key=lambda event: event.block_number)
        return events

    async def get_session(self, player: str, session_id: int) -> SessionRecord | None:
        response = await self._get(f"/sessions/{player}/{session_id}")
        if response.status_code == HTTP_NOT_FOUND:
            return None
        body = self._json(response)
        if str(body.get("player", ZERO_ADDRESS)).lower() == ZERO_ADDRESS:
            return None
        return parse_session_record(body)

    async def get_player_sessions(self, player: str) -> list[SessionRecord]:
        response = await self._get(f"/sessions/{player}")
        if response.status_code == HTTP_NOT_FOUND:
            return []
        body = self._json(response)
        sessions: list[SessionRecord] = []
        for item in self._items(body, "sessions"):
            if not isinstance(item, Mapping):
                logger.warning("Skipping non-object session for %s: %r", player, item)
                continue
            try:
                sessions.append(parse_session_record(item))
            except MalformedRecordError as err:
                logger.warning("Skipping malformed session for %s: %s", player, err)
        return sessions

    async def get_minted_achievements(self, player: str) -> list[bool]:
        """Per-id minted flags; index 0 is achievement 1."""
        config = self._require_config()
        if not config.achievement_contract:
            raise LedgerDisabledError("No achievement contract configured")
        body = self._json(
            await self._get(
                f"/achievements/{player}",
                params={"contract": config.achievement_contract},
            )
        )
        flags = [bool(flag) for flag in self._items(body, "minted")]
        return flags[: config.achievement_count]

    async def status(self) -> str:
        """Return ``uninitialized``, ``connected`` or ``disconnected``."""
        if not self.enabled:
            return "uninitialized"
        try:
            await self.get_block_height()
        except (TransientUpstreamError, LedgerDisabledError):
            return "disconnected"
        return "connected"

    def get_metrics(self) -> dict[str, Any]:
        """Health of the active gateway URL plus a summary of every URL used."""
        health = self._endpoint_health()
        breaker = self._breaker()
        return {
            "endpoint": self.base_url,
            "request_count": health.requests,
            "error_count": health.failures,
            "success_rate": health.success_rate,
            "average_response_time": health.average_latency,
            "error_counts_by_type": dict(health.failures_by_kind),
            "last_error": health.last_error,
            "circuit_state": breaker.state.value,
            "retry_after": round(breaker.retry_after(), 3),
            "failovers": self.failovers,
            "endpoints": {
                url: {
                    "requests": record.requests,
                    "failures": record.failures,
                    "circuit_state": self._breaker(url).state.value,
                }
                for url, record in self._health.items()
            },
        }

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


EventCallback = Callable[[CompletionEvent], Awaitable[Any]]


class LiveSubscription:
    """Follows the chain head and hands each new completion event to a callback.

    Delivery starts at the height observed when the subscription starts;
    history is the backfill's job. ``detach`` stops delivery between events,
    so an in-flight callback always runs to completion.
    """

    def __init__(
        self,
        ledger: LedgerSource,
        callback: EventCallback,
        *,
        poll_interval: float | None = None,
        start_height: int | None = None,
    ) -> None:
        self._ledger = ledger
        self._callback = callback
        self._poll_interval = max(
            0.01,
            float(poll_interval if poll_interval is not None else settings.ledger_live_poll_interval_seconds),
        )
        self._last_height = start_height
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()
        self.delivered = 0

    @property
    def attached(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.attached:
            return
        self._stopping.clear()
        self._task = asyncio.create_task(self._run())

    async def detach(self) -> None:
        """Stop delivery. Safe to call repeatedly."""
        if self._task is None:
            return
        self._stopping.set()
        task, self._task = self._task, None
        await task

    async def poll_once(self) -> int:
        """Deliver events from blocks newer than the last seen height."""
        height = await self._ledger.get_block_height()
        if self._last_height is None:
            self._last_height = height
            return 0
        if height <= self._last_height:
            return 0

        events = await self._ledger.get_completion_events(self._last_height + 1, height)
        delivered = 0
        for event in events:
            if self._stopping.is_set():
                return delivered
            await self._callback(event)
            delivered += 1
        self._last_height = height
        self.delivered += delivered
        return delivered

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await self.poll_once()
            except LedgerDisabledError:
                return
            except TransientUpstreamError as e:
                logger.warning("Live subscription poll failed: %s", e)
            except (OSError, ConnectionError, TimeoutError) as e:
                logger.warning("Live subscription network error: %s", e)
            except (ValueError, TypeError, KeyError, AttributeError) as e:
                logger.error("Live subscription data processing error: %s", e, exc_info=True)
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self._poll_interval)
            except asyncio.TimeoutError:
                continue
