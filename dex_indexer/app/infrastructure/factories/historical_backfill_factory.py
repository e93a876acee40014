from __future__ import annotations

from dex_indexer.app.application.services.contract_registry import ContractRegistry
from dex_indexer.app.application.services.event_router import EventRouter
from dex_indexer.app.application.services.historical_backfill import HistoricalBackfill
from dex_indexer.app.config import Settings
from dex_indexer.app.domain.ports.out import DexEventStore, HistoricalEventsFetcher
from dex_indexer.app.infrastructure.fetchers.cspr_cloud_events_fetcher import (
    CsprCloudEventsFetcher,
)


def historical_backfill_factory(
    *,
    settings: Settings,
    store: DexEventStore,
    fetcher: HistoricalEventsFetcher | None = None,
    max_pages: int | None = None,
) -> HistoricalBackfill:
    """
    Backfill routes through a private registry: tokens discovered while replaying
    PoolCreated events are persisted via their pools and picked up by the
    listener on its next start.
    """
    if fetcher is None:
        fetcher = CsprCloudEventsFetcher(
            base_url=settings.cspr_cloud_url,
            access_key=settings.cspr_cloud_access_key.get_secret_value(),
        )

    router = EventRouter(store=store, registry=ContractRegistry())
    return HistoricalBackfill(
        fetcher=fetcher,
        router=router,
        page_size=settings.backfill_page_size,
        max_pages=max_pages,
    )
