from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, TypeVar

T = TypeVar("T")

# All amount / price / liquidity values are decimal strings (u128/u256 on-chain).


@dataclass(frozen=True)
class Pool:
    id: int
    token0: str
    token1: str
    fee: int
    tick_spacing: int
    pool_address: str
    sqrt_price_x96: str | None
    tick: int | None
    initialized: bool
    deploy_hash: str
    created_at: datetime
    updated_at: datetime
    initialize_deploy_hash: str | None = None


@dataclass(frozen=True)
class LiquidityEvent:
    id: int
    event_type: str  # "mint" | "burn"
    pool_id: int
    sender: str
    owner: str
    tick_lower: int
    tick_upper: int
    amount: str
    amount0: str
    amount1: str
    deploy_hash: str
    timestamp: datetime


@dataclass(frozen=True)
class CollectEvent:
    id: int
    pool_id: int
    owner: str
    recipient: str
    tick_lower: int
    tick_upper: int
    amount0: str
    amount1: str
    deploy_hash: str
    timestamp: datetime


@dataclass(frozen=True)
class TokenTransfer:
    id: int
    token_address: str
    from_address: str | None  # None = minted
    to_address: str
    amount: str
    deploy_hash: str
    timestamp: datetime


@dataclass(frozen=True)
class TokenApproval:
    id: int
    token_address: str
    owner: str
    spender: str
    amount: str
    deploy_hash: str
    timestamp: datetime


@dataclass(frozen=True)
class Position:
    id: int
    token_id: str
    pool_id: int
    owner: str
    tick_lower: int
    tick_upper: int
    liquidity: str
    deploy_hash: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T] = field(default_factory=list)
    total: int = 0
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True)
class PoolStats:
    total_pools: int
    initialized_pools: int
    uninitialized_pools: int
    unique_tokens: int


@dataclass(frozen=True)
class PoolLiquidityStats:
    pool_id: int
    total_mints: int
    total_burns: int
    total_volume0: str
    total_volume1: str


@dataclass(frozen=True)
class PoolFeeStats:
    pool_id: int
    collect_count: int
    total_amount0: str
    total_amount1: str


@dataclass(frozen=True)
class TokenVolume:
    token_address: str
    hours: int
    transfer_count: int
    total_volume: str


@dataclass(frozen=True)
class PositionStats:
    owner: str
    total_positions: int
    active_pools: int
    total_liquidity: str


@dataclass(frozen=True)
class LiquidityEventCounts:
    total_events: int
    mint_events: int
    burn_events: int
