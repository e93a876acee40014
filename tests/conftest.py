from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import pytest
import pytest_asyncio

from dex_indexer.app.domain.exceptions import StreamTransportError
from dex_indexer.app.domain.models import ContractCategory, MonitoredContract
from dex_indexer.app.infrastructure.adapters.sqlalchemy_dex_event_store import (
    SqlAlchemyDexEventStore,
)
from dex_indexer.app.infrastructure.db.db_base import BaseDB
from dex_indexer.app.infrastructure.db.engine import create_app_async_engine
import dex_indexer.app.infrastructure.db.models  # noqa: F401


# ---------------------------------------------------------------------------
# database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_app_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'dex.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(BaseDB.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def store(engine) -> SqlAlchemyDexEventStore:
    return SqlAlchemyDexEventStore(engine)


# ---------------------------------------------------------------------------
# contracts / frames
# ---------------------------------------------------------------------------


DEX = MonitoredContract(address="dex00000", display_name="DEX", category=ContractCategory.EXCHANGE_CORE)
POSITION_MANAGER = MonitoredContract(
    address="pm000000", display_name="PositionManager", category=ContractCategory.POSITION_MANAGER
)
ROUTER = MonitoredContract(address="router00", display_name="Router", category=ContractCategory.ROUTER)


def token_contract(address: str) -> MonitoredContract:
    return MonitoredContract(
        address=address,
        display_name=f"Token-{address[:8]}",
        category=ContractCategory.FUNGIBLE_TOKEN,
    )


def frame(name: str | None, data: dict[str, Any], deploy_hash: str | None = "deploy-1") -> str:
    body: dict[str, Any] = {"data": data}
    if name is not None:
        body["name"] = name
    return json.dumps({"data": body, "extra": {"deploy_hash": deploy_hash}})


# ---------------------------------------------------------------------------
# fake stream transport
# ---------------------------------------------------------------------------


class FakeConnection:
    """
    Scripted StreamConnection.

    Feed items with `push`: strings are delivered as frames, an exception is
    raised from `frames()`, and `None` ends the stream normally.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self.closed = False

    def push(self, *items: object) -> None:
        for item in items:
            self._queue.put_nowait(item)

    async def frames(self) -> AsyncIterator[str]:
        while True:
            item = await self._queue.get()
            if item is None:
                return
            if isinstance(item, BaseException):
                raise item
            yield str(item)

    async def close(self) -> None:
        self.closed = True
        self._queue.put_nowait(None)


class FakeTransport:
    """
    Scripted StreamTransport.

    `script[address]` is a list of outcomes consumed one per connect():
    a FakeConnection to open, or an exception to fail the attempt.
    Once the script runs out, further attempts fail.
    """

    def __init__(self, script: dict[str, list[object]] | None = None) -> None:
        self.script: dict[str, list[object]] = script or {}
        self.connects: list[str] = []
        self.connected = asyncio.Event()

    @asynccontextmanager
    async def connect(self, contract: MonitoredContract) -> AsyncIterator[FakeConnection]:
        self.connects.append(contract.address)
        outcomes = self.script.get(contract.address) or []
        if not outcomes:
            raise StreamTransportError(f"connection refused: {contract.display_name}")

        outcome = outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome

        assert isinstance(outcome, FakeConnection)
        self.connected.set()
        yield outcome


class RecordingSleep:
    """Replaces the reconnect sleep; records requested delays without waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


async def wait_for(predicate, *, timeout: float = 2.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout=timeout)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()
