from __future__ import annotations

import asyncio
import logging
import signal

from dex_indexer.app.config import get_settings
from dex_indexer.app.infrastructure.db.engine import create_app_async_engine
from dex_indexer.app.infrastructure.factories.contract_event_listener_factory import (
    contract_event_listener_factory,
)
from dex_indexer.app.infrastructure.factories.dex_event_store_factory import (
    dex_event_store_factory,
)

logger = logging.getLogger(__name__)


async def listen_task(*, backend: str = "sqlalchemy") -> None:
    """
    Task: stream live events of every monitored contract into the store.

    - opens one websocket per core contract and per known token,
    - follows PoolCreated events to monitor new tokens,
    - runs until SIGINT/SIGTERM.
    """
    settings = get_settings()
    engine = create_app_async_engine(settings.database_url)
    try:
        store = dex_event_store_factory(backend=backend, engine=engine)
        listener = contract_event_listener_factory(settings=settings, store=store)

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, listener.request_stop)
            except NotImplementedError:
                # not supported by Windows event loops
                pass

        await listener.start()
        try:
            await listener.run_until_stopped()
        finally:
            await listener.stop()
    finally:
        await engine.dispose()
