from __future__ import annotations

import logging
from dataclasses import dataclass

from dex_indexer.app.application.services.event_router import EventRouter
from dex_indexer.app.domain.exceptions import MalformedFrameError
from dex_indexer.app.domain.models import EventEnvelope, MonitoredContract
from dex_indexer.app.domain.ports.out import HistoricalEventsFetcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackfillResult:
    contract: str
    pages: int
    events: int
    skipped: int


class HistoricalBackfill:
    """
    Replays past events of a contract through the live router.

    Pages through the contract-package events endpoint. Events delivered again
    later by the live stream are absorbed by idempotent writes in the store.
    """

    def __init__(
        self,
        *,
        fetcher: HistoricalEventsFetcher,
        router: EventRouter,
        page_size: int = 100,
        max_pages: int | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._router = router
        self._page_size = page_size
        self._max_pages = max_pages

    async def backfill(self, contract: MonitoredContract) -> BackfillResult:
        logger.info(
            "Fetching historical events for %s",
            contract.display_name,
            extra={"contract": contract.display_name},
        )

        page = 1
        pages = 0
        events = 0
        skipped = 0

        while self._max_pages is None or page <= self._max_pages:
            items, page_count = await self._fetcher.fetch_page(
                contract_package_hash=contract.address,
                page=page,
                limit=self._page_size,
            )
            pages += 1

            for item in items:
                try:
                    envelope = EventEnvelope.from_historical(item)
                except MalformedFrameError as exc:
                    skipped += 1
                    logger.warning("Skipping historical event: %s", exc, extra={"contract": contract.display_name})
                    continue

                await self._router.route(envelope, contract)
                events += 1

            if not items or len(items) < self._page_size:
                break
            if page_count is not None and page >= page_count:
                break
            page += 1

        logger.info(
            "Backfilled %s events (%s skipped) over %s pages for %s",
            events,
            skipped,
            pages,
            contract.display_name,
        )
        return BackfillResult(contract=contract.address, pages=pages, events=events, skipped=skipped)
