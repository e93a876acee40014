from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Any, AsyncIterator, Protocol

from dex_indexer.app.domain.entities import (
    CollectEvent,
    LiquidityEvent,
    LiquidityEventCounts,
    Page,
    Pool,
    PoolFeeStats,
    PoolLiquidityStats,
    PoolStats,
    Position,
    PositionStats,
    TokenApproval,
    TokenTransfer,
    TokenVolume,
)
from dex_indexer.app.domain.models import MonitoredContract


class DexEventStore(Protocol):
    """
    Port for persisting normalized DEX events and serving the read API.

    Implementations must make every append idempotent with respect to replays:
    the same on-chain event may be delivered once by the historical backfill
    and once more by the live stream.

    All amount / price / liquidity arguments are decimal strings.
    """

    # ------------------------------------------------------------------
    # write side
    # ------------------------------------------------------------------

    async def create_pool(
        self,
        *,
        token0: str,
        token1: str,
        fee: int,
        tick_spacing: int,
        pool_address: str,
        deploy_hash: str,
    ) -> tuple[Pool, bool]:
        """Insert a pool unless (token0, token1, fee) exists. Returns (row, inserted)."""
        ...

    async def find_pool_for_initialize(
        self,
        *,
        pool_address: str | None,
        deploy_hash: str | None,
    ) -> Pool | None: ...

    async def mark_pool_initialized(
        self,
        *,
        pool_id: int,
        sqrt_price_x96: str,
        tick: int,
        deploy_hash: str | None = None,
    ) -> None: ...

    async def resolve_pool(
        self,
        *,
        pool_address: str | None = None,
        token0: str | None = None,
        token1: str | None = None,
        fee: int | None = None,
    ) -> Pool | None: ...

    async def append_liquidity_event(
        self,
        *,
        event_type: str,
        pool_id: int,
        sender: str,
        owner: str,
        tick_lower: int,
        tick_upper: int,
        amount: str,
        amount0: str,
        amount1: str,
        deploy_hash: str,
        timestamp: datetime | None = None,
    ) -> bool: ...

    async def append_collect_event(
        self,
        *,
        pool_id: int,
        owner: str,
        recipient: str,
        tick_lower: int,
        tick_upper: int,
        amount0: str,
        amount1: str,
        deploy_hash: str,
        timestamp: datetime | None = None,
    ) -> bool: ...

    async def append_token_transfer(
        self,
        *,
        token_address: str,
        from_address: str | None,
        to_address: str,
        amount: str,
        deploy_hash: str,
        timestamp: datetime | None = None,
    ) -> bool: ...

    async def append_token_approval(
        self,
        *,
        token_address: str,
        owner: str,
        spender: str,
        amount: str,
        deploy_hash: str,
        timestamp: datetime | None = None,
    ) -> bool: ...

    async def upsert_position(
        self,
        *,
        token_id: str,
        pool_id: int,
        owner: str,
        tick_lower: int,
        tick_upper: int,
        liquidity: str,
        deploy_hash: str,
    ) -> Position: ...

    async def adjust_position_liquidity(
        self,
        *,
        token_id: str,
        delta: int,
        deploy_hash: str,
    ) -> Position | None: ...

    async def unique_tokens(self) -> list[str]: ...

    # ------------------------------------------------------------------
    # read side
    # ------------------------------------------------------------------

    async def find_pools(
        self, *, token: str | None = None, limit: int = 50, offset: int = 0
    ) -> Page[Pool]: ...

    async def find_pool(self, *, pool_id: int) -> Pool | None: ...

    async def find_pool_by_key(self, *, token0: str, token1: str, fee: int) -> Pool | None: ...

    async def pool_stats(self) -> PoolStats: ...

    async def find_liquidity_events(
        self,
        *,
        pool_id: int | None = None,
        owner: str | None = None,
        event_type: str | None = None,
        since: datetime | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Page[LiquidityEvent]: ...

    async def find_collect_events(
        self,
        *,
        pool_id: int | None = None,
        owner: str | None = None,
        recipient: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Page[CollectEvent]: ...

    async def find_token_transfers(
        self,
        *,
        token_address: str | None = None,
        address: str | None = None,
        mints_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> Page[TokenTransfer]: ...

    async def find_token_approvals(
        self,
        *,
        token_address: str | None = None,
        owner: str | None = None,
        spender: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Page[TokenApproval]: ...

    async def current_approval(
        self, *, token_address: str, owner: str, spender: str
    ) -> TokenApproval | None: ...

    async def find_positions(
        self,
        *,
        owner: str | None = None,
        pool_id: int | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Page[Position]: ...

    async def find_position(self, *, token_id: str) -> Position | None: ...

    async def pool_liquidity_stats(self, *, pool_id: int) -> PoolLiquidityStats: ...

    async def pool_fees_collected(self, *, pool_id: int) -> PoolFeeStats: ...

    async def token_volume(self, *, token_address: str, hours: int = 24) -> TokenVolume: ...

    async def position_stats(self, *, owner: str) -> PositionStats: ...

    async def liquidity_event_counts(
        self, *, pool_id: int | None = None, since: datetime | None = None
    ) -> LiquidityEventCounts: ...

    async def ping(self) -> None:
        """Raise if the backing store is unreachable."""
        ...


class StreamConnection(Protocol):
    """
    One open duplex stream for a single contract.

    `frames()` yields raw text frames until the peer closes normally.
    Abnormal termination raises StreamTransportError.
    """

    def frames(self) -> AsyncIterator[str]: ...

    async def close(self) -> None: ...


class StreamTransport(Protocol):
    """Opens stream connections. Connection failures raise StreamTransportError."""

    def connect(
        self, contract: MonitoredContract
    ) -> AbstractAsyncContextManager[StreamConnection]: ...


class HistoricalEventsFetcher(Protocol):
    """
    Low-level dependency used by the historical backfill.

    Returns one page of raw event items plus the total page count
    (None when the API does not report it).
    """

    async def fetch_page(
        self,
        *,
        contract_package_hash: str,
        page: int,
        limit: int,
    ) -> tuple[list[dict[str, Any]], int | None]: ...
