from __future__ import annotations

from typing import Callable, Dict

from sqlalchemy.ext.asyncio import AsyncEngine

from dex_indexer.app.domain.ports.out import DexEventStore
from dex_indexer.app.infrastructure.adapters.sqlalchemy_dex_event_store import (
    SqlAlchemyDexEventStore,
)

DexEventStoreFactory = Callable[[AsyncEngine], DexEventStore]

_DEX_EVENT_STORE_REGISTRY: Dict[str, DexEventStoreFactory] = {
    "sqlalchemy": lambda engine: SqlAlchemyDexEventStore(engine),
}


def dex_event_store_factory(
    *,
    backend: str,
    engine: AsyncEngine,
) -> DexEventStore:
    try:
        factory = _DEX_EVENT_STORE_REGISTRY[backend]
    except KeyError:
        raise ValueError(f"Unsupported DEX event store backend: {backend!r}")
    return factory(engine)
