from __future__ import annotations

import pytest

from conftest import DEX, FakeConnection, FakeTransport, frame, wait_for
from dex_indexer.app.application.services.contract_registry import ContractRegistry
from dex_indexer.app.application.services.stream_connection_manager import (
    StreamConnectionManager,
)
from dex_indexer.app.domain.exceptions import StreamTransportError
from dex_indexer.app.domain.models import ConnectionState


class RecordingHandler:
    def __init__(self, *, fail_first: int = 0) -> None:
        self.seen = []
        self._fail_first = fail_first

    async def __call__(self, envelope, contract) -> None:
        if self._fail_first:
            self._fail_first -= 1
            raise RuntimeError("store down")
        self.seen.append((contract.address, envelope.deploy_hash, envelope.name))


def _manager(transport, handler, sleep, **kwargs) -> StreamConnectionManager:
    return StreamConnectionManager(
        transport=transport,
        handler=handler,
        reconnect_sleep=sleep,
        **kwargs,
    )


# ---------------------------------------------------------------------------
# reconnect / backoff
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_backoff_doubles_and_gives_up_after_max_attempts(recording_sleep):
    transport = FakeTransport()
    manager = _manager(transport, RecordingHandler(), recording_sleep)

    assert manager.watch(DEX) is True
    await manager.wait_closed()

    assert recording_sleep.delays == [1, 2, 4, 8, 16]
    assert len(transport.connects) == 6
    assert manager.state_of(DEX.address) is ConnectionState.FAILED
    assert manager.attempts_of(DEX.address) == 5


@pytest.mark.asyncio
async def test_successful_open_resets_attempt_counter(recording_sleep):
    conn = FakeConnection()
    conn.push(None)  # opens, then closes normally
    transport = FakeTransport(
        {DEX.address: [StreamTransportError("refused"), StreamTransportError("refused"), conn]}
    )
    manager = _manager(transport, RecordingHandler(), recording_sleep)

    manager.watch(DEX)
    await manager.wait_closed()

    assert recording_sleep.delays == [1, 2, 1, 2, 4, 8, 16]
    assert manager.state_of(DEX.address) is ConnectionState.FAILED


@pytest.mark.asyncio
async def test_custom_backoff_base(recording_sleep):
    manager = _manager(
        FakeTransport(),
        RecordingHandler(),
        recording_sleep,
        max_reconnect_attempts=3,
        reconnect_base_delay=0.5,
    )

    manager.watch(DEX)
    await manager.wait_closed()

    assert recording_sleep.delays == [0.5, 1.0, 2.0]
    assert manager.backoff_delay(4) == 4.0


# ---------------------------------------------------------------------------
# heartbeat
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_stale_heartbeat_closes_and_reconnects(recording_sleep):
    first, second = FakeConnection(), FakeConnection()
    transport = FakeTransport({DEX.address: [first, second]})
    manager = _manager(
        transport,
        RecordingHandler(),
        recording_sleep,
        heartbeat_timeout=0.05,
        heartbeat_check_interval=0.01,
    )

    manager.watch(DEX)
    await manager.wait_closed()

    assert first.closed and second.closed
    # each stale connection reconnects with a fresh counter
    assert recording_sleep.delays == [1, 1, 2, 4, 8, 16]


@pytest.mark.asyncio
async def test_heartbeat_frames_are_not_routed(recording_sleep):
    conn = FakeConnection()
    conn.push("Ping", frame("Transfer", {"from": "a", "to": "b", "amount": "1"}), "Ping")
    handler = RecordingHandler()
    manager = _manager(FakeTransport({DEX.address: [conn]}), handler, recording_sleep)

    manager.watch(DEX)
    await wait_for(lambda: len(handler.seen) == 1)

    assert manager.state_of(DEX.address) is ConnectionState.OPEN
    assert manager.connection_count == 1
    await manager.stop()


# ---------------------------------------------------------------------------
# frame handling
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_malformed_frames_are_dropped_without_closing(recording_sleep):
    conn = FakeConnection()
    conn.push(
        "not json",
        '{"data": 1}',
        '{"data": {"name": "Transfer"}}',
        frame("Transfer", {"from": "a", "to": "b", "amount": "1"}, deploy_hash=None),
        frame("Transfer", {"from": "a", "to": "b", "amount": "1"}, deploy_hash="ok"),
    )
    handler = RecordingHandler()
    transport = FakeTransport({DEX.address: [conn]})
    manager = _manager(transport, handler, recording_sleep)

    manager.watch(DEX)
    await wait_for(lambda: len(handler.seen) == 1)

    assert handler.seen == [(DEX.address, "ok", "Transfer")]
    assert not conn.closed
    assert transport.connects == [DEX.address]
    assert manager.state_of(DEX.address) is ConnectionState.OPEN
    await manager.stop()


@pytest.mark.asyncio
async def test_events_of_one_connection_are_processed_in_arrival_order(recording_sleep):
    conn = FakeConnection()
    conn.push(*(frame("Transfer", {"from": "a", "to": "b", "amount": str(i)}, deploy_hash=f"d{i}") for i in range(20)))
    handler = RecordingHandler()
    manager = _manager(FakeTransport({DEX.address: [conn]}), handler, recording_sleep, queue_size=4)

    manager.watch(DEX)
    await wait_for(lambda: len(handler.seen) == 20)

    assert [deploy for _, deploy, _ in handler.seen] == [f"d{i}" for i in range(20)]
    await manager.stop()


@pytest.mark.asyncio
async def test_handler_failure_does_not_stop_the_worker(recording_sleep):
    conn = FakeConnection()
    conn.push(
        frame("Transfer", {"from": "a", "to": "b", "amount": "1"}, deploy_hash="first"),
        frame("Transfer", {"from": "a", "to": "b", "amount": "2"}, deploy_hash="second"),
    )
    handler = RecordingHandler(fail_first=1)
    manager = _manager(FakeTransport({DEX.address: [conn]}), handler, recording_sleep)

    manager.watch(DEX)
    await wait_for(lambda: len(handler.seen) == 1)

    assert handler.seen[0][1] == "second"
    assert manager.state_of(DEX.address) is ConnectionState.OPEN
    await manager.stop()


@pytest.mark.asyncio
async def test_abnormal_close_is_errored_and_reconnected(recording_sleep):
    first, second = FakeConnection(), FakeConnection()
    first.push(StreamTransportError("reset by peer"))
    transport = FakeTransport({DEX.address: [first, second]})
    manager = _manager(transport, RecordingHandler(), recording_sleep)

    manager.watch(DEX)
    await wait_for(lambda: len(transport.connects) == 2 and manager.state_of(DEX.address) is ConnectionState.OPEN)

    assert recording_sleep.delays == [1]
    await manager.stop()


# ---------------------------------------------------------------------------
# lifecycle
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_stop_is_idempotent_and_blocks_new_watches(recording_sleep):
    conn = FakeConnection()
    transport = FakeTransport({DEX.address: [conn]})
    manager = _manager(transport, RecordingHandler(), recording_sleep)

    manager.watch(DEX)
    await transport.connected.wait()

    await manager.stop()
    await manager.stop()

    assert manager.state_of(DEX.address) is ConnectionState.STOPPED
    assert manager.connection_count == 0
    assert manager.watch(DEX) is False
    assert recording_sleep.delays == []


@pytest.mark.asyncio
async def test_watch_twice_opens_one_connection(recording_sleep):
    transport = FakeTransport({DEX.address: [FakeConnection()]})
    manager = _manager(transport, RecordingHandler(), recording_sleep)

    assert manager.watch(DEX) is True
    assert manager.watch(DEX) is False
    await transport.connected.wait()

    assert transport.connects == [DEX.address]
    await manager.stop()


@pytest.mark.asyncio
async def test_registering_a_token_opens_exactly_one_connection(recording_sleep):
    transport = FakeTransport({"tok00001": [FakeConnection()]})
    manager = _manager(transport, RecordingHandler(), recording_sleep)
    registry = ContractRegistry()
    registry.subscribe(manager.on_token_discovered)

    registry.register_token("hash-tok00001")
    registry.register_token("tok00001")
    await transport.connected.wait()

    assert transport.connects == ["tok00001"]
    assert manager.state_of("tok00001") is ConnectionState.OPEN
    await manager.stop()
