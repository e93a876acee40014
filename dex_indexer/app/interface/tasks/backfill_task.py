from __future__ import annotations

import logging

from dex_indexer.app.config import get_settings
from dex_indexer.app.domain.models import ContractCategory
from dex_indexer.app.infrastructure.db.engine import create_app_async_engine
from dex_indexer.app.infrastructure.factories.contract_event_listener_factory import (
    core_contracts_from_settings,
)
from dex_indexer.app.infrastructure.factories.dex_event_store_factory import (
    dex_event_store_factory,
)
from dex_indexer.app.infrastructure.factories.historical_backfill_factory import (
    historical_backfill_factory,
)

logger = logging.getLogger(__name__)

_BACKFILLED_CATEGORIES = (ContractCategory.EXCHANGE_CORE, ContractCategory.POSITION_MANAGER)


async def backfill_task(
    *,
    max_pages: int | None = None,
    backend: str = "sqlalchemy",
) -> None:
    """
    Task: replay historical events of the exchange core and the position manager.

    - pages through CSPR.cloud contract-package events,
    - routes every item through the live event router,
    - duplicates of already indexed events are skipped by the store.
    """
    settings = get_settings()
    engine = create_app_async_engine(settings.database_url)
    try:
        store = dex_event_store_factory(backend=backend, engine=engine)
        backfill = historical_backfill_factory(settings=settings, store=store, max_pages=max_pages)

        for contract in core_contracts_from_settings(settings):
            if contract.category not in _BACKFILLED_CATEGORIES:
                continue
            result = await backfill.backfill(contract)
            logger.info(
                "Backfill of %s done",
                contract.display_name,
                extra={"pages": result.pages, "events": result.events, "skipped": result.skipped},
            )
    finally:
        await engine.dispose()
