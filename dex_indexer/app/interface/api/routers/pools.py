from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from dex_indexer.app.application.services.address import normalize_address
from dex_indexer.app.domain.exceptions import PoolNotFoundError
from dex_indexer.app.domain.ports.out import DexEventStore
from dex_indexer.app.interface.api.deps import get_event_store
from dex_indexer.app.interface.api.schemas import (
    DataResponse,
    PageResponse,
    PoolFeeStatsResponse,
    PoolLiquidityStatsResponse,
    PoolResponse,
    PoolStatsResponse,
    data_response,
    page_response,
)

router = APIRouter(prefix="/api/pools", tags=["pools"])


@router.get("", response_model=PageResponse[PoolResponse])
async def list_pools(
    token: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    store: DexEventStore = Depends(get_event_store),
):
    page = await store.find_pools(token=normalize_address(token), limit=limit, offset=offset)
    return page_response(page, PoolResponse)


@router.get("/stats", response_model=DataResponse[PoolStatsResponse])
async def pool_stats(store: DexEventStore = Depends(get_event_store)):
    return data_response(await store.pool_stats(), PoolStatsResponse)


@router.get("/{pool_id}/liquidity-stats", response_model=DataResponse[PoolLiquidityStatsResponse])
async def pool_liquidity_stats(pool_id: int, store: DexEventStore = Depends(get_event_store)):
    await _require_pool(store, pool_id)
    return data_response(await store.pool_liquidity_stats(pool_id=pool_id), PoolLiquidityStatsResponse)


@router.get("/{pool_id}/fees", response_model=DataResponse[PoolFeeStatsResponse])
async def pool_fees(pool_id: int, store: DexEventStore = Depends(get_event_store)):
    await _require_pool(store, pool_id)
    return data_response(await store.pool_fees_collected(pool_id=pool_id), PoolFeeStatsResponse)


@router.get("/{token0}/{token1}/{fee}", response_model=DataResponse[PoolResponse])
async def get_pool_by_key(
    token0: str,
    token1: str,
    fee: int,
    store: DexEventStore = Depends(get_event_store),
):
    pool = await store.find_pool_by_key(
        token0=normalize_address(token0) or token0,
        token1=normalize_address(token1) or token1,
        fee=fee,
    )
    if pool is None:
        raise PoolNotFoundError("Pool not found")
    return data_response(pool, PoolResponse)


async def _require_pool(store: DexEventStore, pool_id: int) -> None:
    if await store.find_pool(pool_id=pool_id) is None:
        raise PoolNotFoundError(f"Pool {pool_id} not found")
