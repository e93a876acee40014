from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Literal

from fastapi import APIRouter, Depends, Query

from dex_indexer.app.domain.ports.out import DexEventStore
from dex_indexer.app.interface.api.deps import get_event_store
from dex_indexer.app.interface.api.schemas import (
    DataResponse,
    LiquidityAnalyticsResponse,
    VolumeAnalyticsResponse,
)

router = APIRouter(prefix="/api/analytics", tags=["analytics"])

Timeframe = Literal["24h", "7d", "30d"]

_TIMEFRAMES: dict[str, timedelta] = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}


@router.get("/volume", response_model=DataResponse[VolumeAnalyticsResponse])
async def volume(
    timeframe: Timeframe = Query(default="24h"),
    pool_id: int | None = Query(default=None, alias="poolId"),
    store: DexEventStore = Depends(get_event_store),
):
    since = datetime.now(timezone.utc) - _TIMEFRAMES[timeframe]
    counts = await store.liquidity_event_counts(pool_id=pool_id, since=since)
    return DataResponse[VolumeAnalyticsResponse](
        data=VolumeAnalyticsResponse(
            timeframe=timeframe,
            pool_id=pool_id,
            total_events=counts.total_events,
            mint_events=counts.mint_events,
            burn_events=counts.burn_events,
        )
    )


@router.get("/liquidity", response_model=DataResponse[LiquidityAnalyticsResponse])
async def liquidity(store: DexEventStore = Depends(get_event_store)):
    stats = await store.pool_stats()
    all_time = await store.liquidity_event_counts()
    recent = await store.liquidity_event_counts(since=datetime.now(timezone.utc) - _TIMEFRAMES["24h"])
    return DataResponse[LiquidityAnalyticsResponse](
        data=LiquidityAnalyticsResponse(
            total_pools=stats.total_pools,
            active_pools=stats.initialized_pools,
            total_liquidity_events=all_time.total_events,
            recent_mints=recent.mint_events,
            recent_burns=recent.burn_events,
        )
    )
