from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from dex_indexer.app.application.services.address import normalize_address
from dex_indexer.app.domain.ports.out import DexEventStore
from dex_indexer.app.interface.api.deps import get_event_store
from dex_indexer.app.interface.api.schemas import CollectEventResponse, PageResponse, page_response

router = APIRouter(prefix="/api/collect-events", tags=["collect-events"])


@router.get("", response_model=PageResponse[CollectEventResponse])
async def list_collect_events(
    pool_id: int | None = Query(default=None, alias="poolId"),
    owner: str | None = Query(default=None),
    recipient: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    store: DexEventStore = Depends(get_event_store),
):
    page = await store.find_collect_events(
        pool_id=pool_id,
        owner=normalize_address(owner),
        recipient=normalize_address(recipient),
        limit=limit,
        offset=offset,
    )
    return page_response(page, CollectEventResponse)
