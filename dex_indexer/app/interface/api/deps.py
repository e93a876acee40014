from __future__ import annotations

from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine

from dex_indexer.app.config import Settings, get_settings
from dex_indexer.app.domain.ports.out import DexEventStore
from dex_indexer.app.infrastructure.db.engine import create_app_async_engine
from dex_indexer.app.infrastructure.factories.dex_event_store_factory import (
    dex_event_store_factory,
)


@lru_cache
def get_engine() -> AsyncEngine:
    return create_app_async_engine(get_settings().database_url)


def get_app_settings() -> Settings:
    return get_settings()


def get_event_store() -> DexEventStore:
    return dex_event_store_factory(backend="sqlalchemy", engine=get_engine())
