from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest

import dex_indexer.app.infrastructure.fetchers.cspr_cloud_events_fetcher as fetcher_module
from conftest import DEX
from dex_indexer.app.application.services.contract_registry import ContractRegistry
from dex_indexer.app.application.services.event_router import EventRouter
from dex_indexer.app.application.services.historical_backfill import HistoricalBackfill
from dex_indexer.app.infrastructure.fetchers.cspr_cloud_events_fetcher import CsprCloudEventsFetcher


def _event(i: int) -> dict:
    return {
        "event_type_name": "Mint",
        "data": {"owner": f"account-hash-o{i}", "sender": "hash-s", "amount": str(i), "amount0": "1", "amount1": "2"},
        "deploy_hash": f"deploy-{i}",
        "timestamp": "2026-10-19T12:00:00Z",
    }


class PagedFetcher:
    def __init__(self, pages: list[list[dict]], page_count: int | None = None) -> None:
        self.pages = pages
        self.page_count = page_count
        self.requested: list[int] = []

    async def fetch_page(self, *, contract_package_hash: str, page: int, limit: int):
        self.requested.append(page)
        items = self.pages[page - 1] if page <= len(self.pages) else []
        return items, self.page_count


@pytest.fixture
def no_sleep(monkeypatch):
    delays: list[float] = []

    async def _sleep(delay: float) -> None:
        delays.append(delay)

    monkeypatch.setattr(fetcher_module, "asyncio", SimpleNamespace(sleep=_sleep))
    return delays


# ---------------------------------------------------------------------------
# pagination
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_stops_on_short_page():
    router = AsyncMock()
    fetcher = PagedFetcher([[_event(1), _event(2)], [_event(3)]])
    backfill = HistoricalBackfill(fetcher=fetcher, router=router, page_size=2)

    result = await backfill.backfill(DEX)

    assert fetcher.requested == [1, 2]
    assert (result.pages, result.events, result.skipped) == (2, 3, 0)
    assert router.route.await_count == 3
    envelope, contract = router.route.await_args_list[0].args
    assert envelope.name == "Mint"
    assert envelope.deploy_hash == "deploy-1"
    assert contract is DEX


@pytest.mark.asyncio
async def test_stops_at_page_count_and_max_pages():
    router = AsyncMock()
    full = [_event(1), _event(2)]

    by_count = PagedFetcher([full, full, full], page_count=2)
    await HistoricalBackfill(fetcher=by_count, router=router, page_size=2).backfill(DEX)
    assert by_count.requested == [1, 2]

    capped = PagedFetcher([full, full, full])
    await HistoricalBackfill(fetcher=capped, router=router, page_size=2, max_pages=1).backfill(DEX)
    assert capped.requested == [1]


@pytest.mark.asyncio
async def test_malformed_items_are_skipped():
    router = AsyncMock()
    without_deploy = {**_event(2), "deploy_hash": None}
    fetcher = PagedFetcher([[_event(1), {"event_type_name": "Mint", "data": "not-an-object"}, without_deploy]])

    result = await HistoricalBackfill(fetcher=fetcher, router=router, page_size=10).backfill(DEX)

    assert (result.events, result.skipped) == (1, 2)


@pytest.mark.asyncio
async def test_replayed_history_is_idempotent(store):
    await store.create_pool(token0="A", token1="B", fee=3000, tick_spacing=60, pool_address="", deploy_hash="d")
    router = EventRouter(store=store, registry=ContractRegistry())
    fetcher = PagedFetcher([[_event(1), _event(2)]])
    backfill = HistoricalBackfill(fetcher=fetcher, router=router, page_size=10)

    await backfill.backfill(DEX)
    await backfill.backfill(DEX)

    page = await store.find_liquidity_events()
    assert page.total == 2
    assert {e.owner for e in page.items} == {"o1", "o2"}


# ---------------------------------------------------------------------------
# REST fetcher
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_fetcher_requests_contract_package_events():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"data": [_event(1), "junk"], "page_count": 4, "item_count": 1})

    fetcher = CsprCloudEventsFetcher(
        base_url="https://api.example.test/",
        access_key="secret",
        transport=httpx.MockTransport(handler),
    )

    items, page_count = await fetcher.fetch_page(contract_package_hash="dex00000", page=2, limit=25)

    assert page_count == 4
    assert [i["deploy_hash"] for i in items] == ["deploy-1"]
    request = seen[0]
    assert request.url.path == "/contract-packages/dex00000/events"
    assert dict(request.url.params) == {"page": "2", "limit": "25"}
    assert request.headers["authorization"] == "secret"


@pytest.mark.asyncio
async def test_fetcher_retries_then_succeeds(no_sleep):
    responses = [httpx.Response(503), httpx.Response(200, json={"data": []})]

    fetcher = CsprCloudEventsFetcher(
        base_url="https://api.example.test",
        access_key="secret",
        transport=httpx.MockTransport(lambda request: responses.pop(0)),
    )

    items, page_count = await fetcher.fetch_page(contract_package_hash="dex00000", page=1, limit=10)

    assert (items, page_count) == ([], None)
    assert no_sleep == [0.5]


@pytest.mark.asyncio
async def test_fetcher_gives_up_after_retries(no_sleep):
    fetcher = CsprCloudEventsFetcher(
        base_url="https://api.example.test",
        access_key="secret",
        max_retries=3,
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )

    with pytest.raises(RuntimeError, match="failed after retries"):
        await fetcher.fetch_page(contract_package_hash="dex00000", page=1, limit=10)

    assert no_sleep == [0.5, 1.0]
