"""Tests for the ledger gateway client and live subscription."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from typerank.core.errors import LedgerDisabledError, MalformedRecordError, TransientUpstreamError
from typerank.core.ledger_config import LedgerConfig
from typerank.services.ledger import (
    ZERO_ADDRESS,
    CircuitState,
    CompletionEvent,
    GatewayBreaker,
    LedgerClient,
    LiveSubscription,
)

PLAYER = "0x" + "ab" * 20
GAME_CONTRACT = "0x" + "cd" * 20
ACHIEVEMENT_CONTRACT = "0x" + "ef" * 20


def make_config(**overrides) -> LedgerConfig:
    values = {
        "source": "test",
        "rpc_urls": ["https://primary.example", "https://backup.example"],
        "game_contract": GAME_CONTRACT,
        "achievement_contract": ACHIEVEMENT_CONTRACT,
    }
    values.update(overrides)
    return LedgerConfig(**values)


def session_payload(**overrides) -> dict:
    payload = {
        "player": PLAYER,
        "session_id": "4",
        "mode": 1,
        "words_typed": 25,
        "correct_words": 24,
        "mistakes": 1,
        "accuracy": 9600,
        "wpm": 70,
        "duration": 21,
        "completed": True,
        "end_time": 1_760_000_000,
    }
    payload.update(overrides)
    return payload


def make_client(handler, **config_overrides) -> LedgerClient:
    return LedgerClient(
        make_config(**config_overrides),
        enabled=True,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_block_height() -> None:
    client = make_client(lambda request: httpx.Response(200, json={"height": 1234}))
    assert await client.get_block_height() == 1234
    assert client.last_height == 1234
    await client.close()


@pytest.mark.asyncio
async def test_completion_events_are_decoded_and_ordered() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "events": [
                    {"player": PLAYER, "session_id": 2, "words_typed": 10, "accuracy": 10000,
                     "wpm": 40, "timestamp": 0, "block_number": 12},
                    {"player": PLAYER, "session_id": 1, "words_typed": 12, "accuracy": 9000,
                     "wpm": 50, "timestamp": 1_760_000_000, "block_number": 11},
                    {"player": PLAYER},
                ]
            },
        )

    client = make_client(handler)
    events = await client.get_completion_events(10, 20)

    assert [event.session_id for event in events] == [1, 2]
    assert events[0].timestamp == 1_760_000_000
    assert events[1].timestamp is None
    assert seen[0].url.path == "/events/GameCompleted"
    assert seen[0].url.params["from_block"] == "10"
    assert seen[0].url.params["contract"] == GAME_CONTRACT
    await client.close()


@pytest.mark.asyncio
async def test_get_session_variants() -> None:
    responses = {
        "/sessions/%s/4" % PLAYER: httpx.Response(200, json=session_payload()),
        "/sessions/%s/5" % PLAYER: httpx.Response(404, json={}),
        "/sessions/%s/6" % PLAYER: httpx.Response(200, json=session_payload(player=ZERO_ADDRESS)),
        "/sessions/%s/7" % PLAYER: httpx.Response(200, json=session_payload(wpm=None)),
    }
    client = make_client(lambda request: responses[request.url.path])

    record = await client.get_session(PLAYER, 4)
    assert record is not None
    assert record.session_id == 4
    assert record.accuracy == 9600
    assert record.end_time == 1_760_000_000
    assert await client.get_session(PLAYER, 5) is None
    assert await client.get_session(PLAYER, 6) is None
    with pytest.raises(MalformedRecordError):
        await client.get_session(PLAYER, 7)
    await client.close()


@pytest.mark.asyncio
async def test_player_sessions_skip_malformed_entries() -> None:
    client = make_client(
        lambda request: httpx.Response(
            200, json={"sessions": [session_payload(), session_payload(mode=None)]}
        )
    )
    sessions = await client.get_player_sessions(PLAYER)
    assert len(sessions) == 1
    await client.close()


@pytest.mark.asyncio
async def test_minted_achievements() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["contract"] == ACHIEVEMENT_CONTRACT
        return httpx.Response(200, json={"minted": [True, False, 1, 0, False, False]})

    client = make_client(handler)
    assert await client.get_minted_achievements(PLAYER) == [True, False, True, False, False, False]
    await client.close()


@pytest.mark.asyncio
async def test_minted_achievements_need_a_contract() -> None:
    client = make_client(lambda request: httpx.Response(200, json={}), achievement_contract=None)
    with pytest.raises(LedgerDisabledError):
        await client.get_minted_achievements(PLAYER)
    await client.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [429, 500, 503])
async def test_upstream_failures_are_transient(status_code: int) -> None:
    client = make_client(lambda request: httpx.Response(status_code, json={}))
    with pytest.raises(TransientUpstreamError):
        await client.get_block_height()
    assert client.get_metrics()["error_count"] == 1
    await client.close()


@pytest.mark.asyncio
async def test_network_errors_are_transient() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = make_client(handler)
    with pytest.raises(TransientUpstreamError):
        await client.get_block_height()
    await client.close()


@pytest.mark.asyncio
async def test_circuit_opens_after_repeated_failures() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(500)

    client = make_client(handler)
    for _ in range(5):
        with pytest.raises(TransientUpstreamError):
            await client.get_block_height()
    with pytest.raises(TransientUpstreamError, match="circuit breaker"):
        await client.get_block_height()
    assert calls == 5
    assert client.get_metrics()["circuit_state"] == "open"
    await client.close()


@pytest.mark.asyncio
async def test_switch_endpoint_fails_over_and_wraps() -> None:
    hosts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        return httpx.Response(200, json={"height": 1})

    client = make_client(handler)
    await client.get_block_height()
    assert await client.switch_endpoint() == "https://backup.example"
    await client.get_block_height()
    assert await client.switch_endpoint() == "https://primary.example"
    assert hosts == ["primary.example", "backup.example"]
    await client.close()


@pytest.mark.asyncio
async def test_status_values() -> None:
    assert await LedgerClient(None).status() == "uninitialized"
    assert await make_client(lambda r: httpx.Response(200, json={"height": 3})).status() == "connected"
    assert await make_client(lambda r: httpx.Response(502)).status() == "disconnected"


@pytest.mark.asyncio
async def test_disabled_client_refuses_requests() -> None:
    client = LedgerClient(make_config(), enabled=False)
    with pytest.raises(LedgerDisabledError):
        await client.get_block_height()


def _event(session_id: int, block: int) -> CompletionEvent:
    return CompletionEvent(
        player=PLAYER,
        session_id=session_id,
        words_typed=10,
        accuracy=10000,
        wpm=50,
        timestamp=None,
        block_number=block,
    )


@pytest.mark.asyncio
async def test_live_subscription_starts_at_current_head() -> None:
    ledger = AsyncMock()
    ledger.get_block_height.side_effect = [100, 100, 103]
    ledger.get_completion_events.return_value = [_event(1, 101), _event(2, 103)]
    delivered: list[int] = []

    async def callback(event: CompletionEvent) -> None:
        delivered.append(event.session_id)

    subscription = LiveSubscription(ledger, callback, poll_interval=0.01)

    assert await subscription.poll_once() == 0
    assert await subscription.poll_once() == 0
    assert await subscription.poll_once() == 2
    ledger.get_completion_events.assert_awaited_once_with(101, 103)
    assert delivered == [1, 2]


@pytest.mark.asyncio
async def test_live_subscription_detach_is_idempotent() -> None:
    ledger = AsyncMock()
    ledger.get_block_height.return_value = 10
    subscription = LiveSubscription(ledger, AsyncMock(), poll_interval=0.01)

    await subscription.detach()
    subscription.start()
    assert subscription.attached
    await asyncio.sleep(0.03)
    await subscription.detach()
    await subscription.detach()
    assert not subscription.attached


@pytest.mark.asyncio
async def test_minted_flags_are_capped_at_achievement_count() -> None:
    client = make_client(
        lambda request: httpx.Response(200, json={"minted": [True, True, True]}),
        achievement_count=2,
    )
    assert await client.get_minted_achievements(PLAYER) == [True, True]
    await client.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{"unexpected": 1}, {"height": None}, {"height": "tip"}])
async def test_height_reply_without_a_usable_height_is_transient(body: dict) -> None:
    client = make_client(lambda request: httpx.Response(200, json=body))
    with pytest.raises(TransientUpstreamError, match="no usable height"):
        await client.get_block_height()
    assert client.last_height is None
    await client.close()


@pytest.mark.asyncio
async def test_non_list_event_payload_is_transient() -> None:
    client = make_client(lambda request: httpx.Response(200, json={"events": {"player": PLAYER}}))
    with pytest.raises(TransientUpstreamError, match="non-list 'events'"):
        await client.get_completion_events(1, 10)
    await client.close()


@pytest.mark.asyncio
async def test_unconfigured_client_refuses_contract_queries() -> None:
    client = LedgerClient(None)
    with pytest.raises(LedgerDisabledError, match="not configured"):
        await client.get_completion_events(1, 10)
    with pytest.raises(LedgerDisabledError, match="not configured"):
        await client.get_minted_achievements(PLAYER)


def test_breaker_cools_down_then_closes_after_trial_successes() -> None:
    now = 1000.0
    breaker = GatewayBreaker(failure_threshold=2, cooldown=10.0, clock=lambda: now)

    breaker.failed()
    assert breaker.allows_request()
    breaker.failed()
    assert breaker.state is CircuitState.OPEN
    assert not breaker.allows_request()
    assert breaker.retry_after() == 10.0

    now += 4
    assert breaker.retry_after() == 6.0
    now += 6
    assert breaker.allows_request()
    assert breaker.state is CircuitState.HALF_OPEN

    breaker.succeeded()
    assert breaker.state is CircuitState.HALF_OPEN
    breaker.succeeded()
    assert breaker.state is CircuitState.CLOSED
    assert breaker.retry_after() == 0.0


def test_breaker_reopens_on_failed_trial() -> None:
    now = 0.0
    breaker = GatewayBreaker(failure_threshold=1, cooldown=5.0, clock=lambda: now)
    breaker.failed()
    now = 5.0
    assert breaker.allows_request()

    breaker.failed()

    assert breaker.state is CircuitState.OPEN
    assert breaker.retry_after() == 5.0


@pytest.mark.asyncio
async def test_open_circuit_is_reported_and_tracked_per_endpoint() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "primary.example":
            return httpx.Response(503)
        return httpx.Response(200, json={"height": 9})

    client = make_client(handler)
    for _ in range(5):
        with pytest.raises(TransientUpstreamError):
            await client.get_block_height()

    assert client.circuit_open
    metrics = client.get_metrics()
    assert metrics["circuit_state"] == "open"
    assert metrics["retry_after"] > 0
    assert metrics["error_counts_by_type"] == {"http_503": 5}

    await client.switch_endpoint()
    assert not client.circuit_open
    assert await client.get_block_height() == 9
    metrics = client.get_metrics()
    assert metrics["failovers"] == 1
    assert metrics["endpoints"]["https://primary.example"]["circuit_state"] == "open"
    assert metrics["endpoints"]["https://backup.example"] == {
        "requests": 1,
        "failures": 0,
        "circuit_state": "closed",
    }
    await client.close()


@pytest.mark.asyncio
async def test_switch_endpoint_skips_urls_still_cooling_down() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "backup.example":
            return httpx.Response(500)
        return httpx.Response(200, json={"height": 1})

    client = make_client(
        handler,
        rpc_urls=["https://primary.example", "https://backup.example", "https://spare.example"],
    )
    assert await client.switch_endpoint() == "https://backup.example"
    for _ in range(5):
        with pytest.raises(TransientUpstreamError):
            await client.get_block_height()

    assert await client.switch_endpoint() == "https://spare.example"
    assert await client.switch_endpoint() == "https://primary.example"
    assert await client.switch_endpoint() == "https://spare.example"
    assert client.failovers == 4
    await client.close()


@pytest.mark.asyncio
async def test_live_subscription_survives_unexpected_errors() -> None:
    failures = iter([KeyError("height"), ValueError("bad height")])

    async def height() -> int:
        error = next(failures, None)
        if error is not None:
            raise error
        return 5

    ledger = AsyncMock()
    ledger.get_block_height.side_effect = height
    subscription = LiveSubscription(ledger, AsyncMock(), poll_interval=0.01)

    subscription.start()
    for _ in range(200):
        if ledger.get_block_height.await_count >= 3:
            break
        await asyncio.sleep(0.01)

    assert subscription.attached
    await subscription.detach()
