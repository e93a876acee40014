from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from dex_indexer.app.domain.exceptions import MalformedFrameError
from dex_indexer.app.domain.models import (
    ConnectionState,
    EventEnvelope,
    MonitoredContract,
    TokenDiscovered,
)
from dex_indexer.app.domain.ports.out import StreamConnection, StreamTransport

logger = logging.getLogger(__name__)

EnvelopeHandler = Callable[[EventEnvelope, MonitoredContract], Awaitable[None]]
Sleep = Callable[[float], Awaitable[None]]

_STOP = object()


@dataclass
class _ConnectionSlot:
    contract: MonitoredContract
    state: ConnectionState = ConnectionState.CONNECTING
    attempts: int = 0
    last_frame_at: float = 0.0
    supervisor: asyncio.Task[None] | None = None


class StreamConnectionManager:
    """
    Keeps one live stream per monitored contract.

    Each contract gets a supervisor task running the connection lifecycle:

        Connecting -> Open -> {Closed, Errored} -> (backoff) -> Connecting ...

    Reconnect delay before the Nth consecutive attempt is
    ``reconnect_base_delay * 2 ** (N - 1)``. After ``max_reconnect_attempts``
    consecutive failed reconnects the contract is abandoned (state FAILED).
    Reaching Open resets the counter.

    Inside an open connection:
    - a reader pushes frames onto a bounded per-connection queue,
    - a worker drains the queue in arrival order and hands envelopes to `handler`,
    - a watchdog closes the connection if no frame (heartbeat or event) arrived
      within ``heartbeat_timeout`` seconds.
    """

    def __init__(
        self,
        *,
        transport: StreamTransport,
        handler: EnvelopeHandler,
        heartbeat_message: str = "Ping",
        heartbeat_timeout: float = 30.0,
        heartbeat_check_interval: float = 30.0,
        max_reconnect_attempts: int = 5,
        reconnect_base_delay: float = 1.0,
        queue_size: int = 1000,
        reconnect_sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._transport = transport
        self._handler = handler
        self._heartbeat_message = heartbeat_message
        self._heartbeat_timeout = heartbeat_timeout
        self._heartbeat_check_interval = heartbeat_check_interval
        self._max_reconnect_attempts = max_reconnect_attempts
        self._reconnect_base_delay = reconnect_base_delay
        self._queue_size = queue_size
        self._reconnect_sleep = reconnect_sleep
        self._clock = clock

        self._slots: dict[str, _ConnectionSlot] = {}
        self._stopped = False

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------

    def watch(self, contract: MonitoredContract) -> bool:
        """
        Start monitoring a contract. Returns False if it is already watched
        or the manager has been stopped.
        """
        if self._stopped or contract.address in self._slots:
            return False

        slot = _ConnectionSlot(contract=contract)
        self._slots[contract.address] = slot
        slot.supervisor = asyncio.get_running_loop().create_task(
            self._supervise(slot),
            name=f"stream:{contract.display_name}",
        )
        return True

    def on_token_discovered(self, message: TokenDiscovered) -> None:
        """Registry listener: open a stream for every newly registered token."""
        self.watch(message.contract)

    def state_of(self, address: str) -> ConnectionState | None:
        slot = self._slots.get(address)
        return slot.state if slot else None

    def attempts_of(self, address: str) -> int:
        slot = self._slots.get(address)
        return slot.attempts if slot else 0

    def states(self) -> dict[str, ConnectionState]:
        return {address: slot.state for address, slot in self._slots.items()}

    @property
    def connection_count(self) -> int:
        return sum(1 for slot in self._slots.values() if slot.state is ConnectionState.OPEN)

    async def wait_closed(self) -> None:
        """Wait until every supervisor has finished (stopped or permanently failed)."""
        tasks = [s.supervisor for s in self._slots.values() if s.supervisor is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def stop(self) -> None:
        """
        Close every connection and cancel pending reconnects.

        In-flight persistence calls are not drained. Calling stop() again is a no-op.
        """
        if self._stopped:
            return
        self._stopped = True

        logger.info("Stopping stream connections", extra={"connections": len(self._slots)})

        tasks: list[asyncio.Task[None]] = []
        for slot in self._slots.values():
            if slot.supervisor is not None and not slot.supervisor.done():
                slot.supervisor.cancel()
                tasks.append(slot.supervisor)

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        for slot in self._slots.values():
            if slot.state is not ConnectionState.FAILED:
                slot.state = ConnectionState.STOPPED

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def backoff_delay(self, attempt: int) -> float:
        """Delay before reconnect number `attempt` (1-based)."""
        return self._reconnect_base_delay * (2 ** (attempt - 1))

    async def _supervise(self, slot: _ConnectionSlot) -> None:
        contract = slot.contract
        ctx = {"contract": contract.display_name, "category": contract.category.value}

        while not self._stopped:
            await self._run_connection(slot)

            if self._stopped:
                break

            if slot.attempts >= self._max_reconnect_attempts:
                slot.state = ConnectionState.FAILED
                logger.error(
                    "Max reconnection attempts reached for %s, giving up",
                    contract.display_name,
                    extra={**ctx, "attempts": slot.attempts},
                )
                return

            slot.attempts += 1
            delay = self.backoff_delay(slot.attempts)
            logger.warning(
                "Reconnecting to %s in %.1fs (attempt %s/%s)",
                contract.display_name,
                delay,
                slot.attempts,
                self._max_reconnect_attempts,
                extra={**ctx, "attempt": slot.attempts, "delay": delay},
            )
            await self._reconnect_sleep(delay)

    async def _run_connection(self, slot: _ConnectionSlot) -> bool:
        """
        One Connecting -> Open -> Closed/Errored cycle.

        Returns True if the connection reached Open.
        """
        contract = slot.contract
        ctx = {"contract": contract.display_name, "category": contract.category.value}
        opened = False
        slot.state = ConnectionState.CONNECTING
        logger.info("Connecting to %s (%s)", contract.display_name, contract.category.value, extra=ctx)

        try:
            async with self._transport.connect(contract) as conn:
                opened = True
                slot.state = ConnectionState.OPEN
                slot.attempts = 0
                slot.last_frame_at = self._clock()
                logger.info("Connected to %s", contract.display_name, extra=ctx)

                stalled = await self._pump(slot, conn)

            if stalled:
                slot.state = ConnectionState.ERRORED
            else:
                slot.state = ConnectionState.CLOSED
                logger.info("Disconnected from %s", contract.display_name, extra=ctx)
        except asyncio.CancelledError:
            slot.state = ConnectionState.STOPPED
            raise
        except Exception as exc:
            slot.state = ConnectionState.ERRORED
            logger.warning(
                "%s stream error: %s",
                contract.display_name,
                exc,
                extra={**ctx, "error": repr(exc)},
            )

        return opened

    async def _pump(self, slot: _ConnectionSlot, conn: StreamConnection) -> bool:
        """
        Run reader, worker and watchdog for one open connection.

        Returns True if the watchdog closed the connection for a stale heartbeat.
        Transport errors from the reader propagate.
        """
        queue: asyncio.Queue[object] = asyncio.Queue(maxsize=self._queue_size)
        stalled = asyncio.Event()

        worker = asyncio.create_task(self._work(slot, queue))
        watchdog = asyncio.create_task(self._watch_heartbeat(slot, conn, stalled))
        try:
            async for frame in conn.frames():
                slot.last_frame_at = self._clock()
                if frame == self._heartbeat_message:
                    continue
                await queue.put(frame)
        finally:
            watchdog.cancel()
            await asyncio.gather(watchdog, return_exceptions=True)
            if self._stopped:
                worker.cancel()
            else:
                # events already received on this connection are still processed in order
                await queue.put(_STOP)
            await asyncio.gather(worker, return_exceptions=True)

        return stalled.is_set()

    async def _watch_heartbeat(
        self,
        slot: _ConnectionSlot,
        conn: StreamConnection,
        stalled: asyncio.Event,
    ) -> None:
        while True:
            await asyncio.sleep(self._heartbeat_check_interval)
            silence = self._clock() - slot.last_frame_at
            if silence > self._heartbeat_timeout:
                logger.warning(
                    "No heartbeat from %s for %.1fs, closing stream",
                    slot.contract.display_name,
                    silence,
                    extra={"contract": slot.contract.display_name, "silence": silence},
                )
                stalled.set()
                await conn.close()
                return

    async def _work(self, slot: _ConnectionSlot, queue: asyncio.Queue[object]) -> None:
        contract = slot.contract
        while True:
            frame = await queue.get()
            if frame is _STOP:
                return
            try:
                envelope = EventEnvelope.from_frame(json.loads(str(frame)))
            except (json.JSONDecodeError, MalformedFrameError) as exc:
                logger.warning(
                    "Dropping malformed frame from %s: %s",
                    contract.display_name,
                    exc,
                    extra={"contract": contract.display_name, "frame": str(frame)[:200]},
                )
                continue

            try:
                await self._handler(envelope, contract)
            except Exception:
                # handler errors never stop the worker
                logger.exception(
                    "Unhandled error while routing event from %s",
                    contract.display_name,
                    extra={"contract": contract.display_name, "deploy_hash": envelope.deploy_hash},
                )
