from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from dex_indexer.app.application.services.address import normalize_address
from dex_indexer.app.domain.ports.out import DexEventStore
from dex_indexer.app.interface.api.deps import get_event_store
from dex_indexer.app.interface.api.schemas import (
    DataResponse,
    PageResponse,
    PositionResponse,
    PositionStatsResponse,
    data_response,
    page_response,
)

router = APIRouter(prefix="/api/positions", tags=["positions"])


@router.get("", response_model=PageResponse[PositionResponse])
async def list_positions(
    owner: str | None = Query(default=None),
    pool_id: int | None = Query(default=None, alias="poolId"),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    store: DexEventStore = Depends(get_event_store),
):
    page = await store.find_positions(
        owner=normalize_address(owner), pool_id=pool_id, limit=limit, offset=offset
    )
    return page_response(page, PositionResponse)


@router.get("/owner/{owner}", response_model=PageResponse[PositionResponse])
async def positions_by_owner(
    owner: str,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    store: DexEventStore = Depends(get_event_store),
):
    page = await store.find_positions(owner=normalize_address(owner), limit=limit, offset=offset)
    return page_response(page, PositionResponse)


@router.get("/owner/{owner}/stats", response_model=DataResponse[PositionStatsResponse])
async def position_stats(owner: str, store: DexEventStore = Depends(get_event_store)):
    stats = await store.position_stats(owner=normalize_address(owner) or owner)
    return data_response(stats, PositionStatsResponse)


@router.get("/{token_id}", response_model=DataResponse[PositionResponse])
async def get_position(token_id: str, store: DexEventStore = Depends(get_event_store)):
    position = await store.find_position(token_id=token_id)
    if position is None:
        raise HTTPException(status_code=404, detail="Position not found")
    return data_response(position, PositionResponse)
