from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine


def create_app_async_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    """
    Factory for AsyncEngine used by the listener, the backfill task and the API.

    Centralizing engine creation keeps connection handling consistent
    across tasks and makes it easier to tweak pool settings in one place.
    """
    return create_async_engine(
        database_url,  # postgresql+asyncpg://... (sqlite+aiosqlite:// in tests)
        echo=echo,
        pool_pre_ping=True,
    )
