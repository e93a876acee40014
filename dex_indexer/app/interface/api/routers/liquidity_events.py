from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query

from dex_indexer.app.application.services.address import normalize_address
from dex_indexer.app.domain.ports.out import DexEventStore
from dex_indexer.app.interface.api.deps import get_event_store
from dex_indexer.app.interface.api.schemas import (
    LiquidityEventResponse,
    PageResponse,
    page_response,
)

router = APIRouter(prefix="/api/liquidity-events", tags=["liquidity-events"])


@router.get("", response_model=PageResponse[LiquidityEventResponse])
async def list_liquidity_events(
    pool_id: int | None = Query(default=None, alias="poolId"),
    event_type: Literal["mint", "burn"] | None = Query(default=None, alias="eventType"),
    owner: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    store: DexEventStore = Depends(get_event_store),
):
    page = await store.find_liquidity_events(
        pool_id=pool_id,
        owner=normalize_address(owner),
        event_type=event_type,
        limit=limit,
        offset=offset,
    )
    return page_response(page, LiquidityEventResponse)


@router.get("/pool/{pool_id}", response_model=PageResponse[LiquidityEventResponse])
async def liquidity_events_by_pool(
    pool_id: int,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    store: DexEventStore = Depends(get_event_store),
):
    page = await store.find_liquidity_events(pool_id=pool_id, limit=limit, offset=offset)
    return page_response(page, LiquidityEventResponse)


@router.get("/owner/{owner}", response_model=PageResponse[LiquidityEventResponse])
async def liquidity_events_by_owner(
    owner: str,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    store: DexEventStore = Depends(get_event_store),
):
    page = await store.find_liquidity_events(owner=normalize_address(owner), limit=limit, offset=offset)
    return page_response(page, LiquidityEventResponse)
