from __future__ import annotations

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from dex_indexer.app.domain.entities import Page

T = TypeVar("T")


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python; built from domain dataclasses."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class DataResponse(ApiModel, Generic[T]):
    success: bool = True
    data: T


class PageResponse(ApiModel, Generic[T]):
    success: bool = True
    data: list[T]
    total: int
    limit: int
    offset: int


class ErrorResponse(ApiModel):
    success: bool = False
    error: str


# ---------------------------------------------------------------------------
# entities
# ---------------------------------------------------------------------------


class PoolResponse(ApiModel):
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


class LiquidityEventResponse(ApiModel):
    id: int
    event_type: str
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


class CollectEventResponse(ApiModel):
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


class TokenTransferResponse(ApiModel):
    id: int
    token_address: str
    from_address: str | None
    to_address: str
    amount: str
    deploy_hash: str
    timestamp: datetime


class TokenApprovalResponse(ApiModel):
    id: int
    token_address: str
    owner: str
    spender: str
    amount: str
    deploy_hash: str
    timestamp: datetime


class PositionResponse(ApiModel):
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


# ---------------------------------------------------------------------------
# aggregates
# ---------------------------------------------------------------------------


class PoolStatsResponse(ApiModel):
    total_pools: int
    initialized_pools: int
    uninitialized_pools: int
    unique_tokens: int


class PoolLiquidityStatsResponse(ApiModel):
    pool_id: int
    total_mints: int
    total_burns: int
    total_volume0: str
    total_volume1: str


class PoolFeeStatsResponse(ApiModel):
    pool_id: int
    collect_count: int
    total_amount0: str
    total_amount1: str


class TokenVolumeResponse(ApiModel):
    token_address: str
    hours: int
    transfer_count: int
    total_volume: str


class PositionStatsResponse(ApiModel):
    owner: str
    total_positions: int
    active_pools: int
    total_liquidity: str


class VolumeAnalyticsResponse(ApiModel):
    timeframe: str
    pool_id: int | None = None
    total_events: int
    mint_events: int
    burn_events: int


class LiquidityAnalyticsResponse(ApiModel):
    total_pools: int
    active_pools: int
    total_liquidity_events: int
    recent_mints: int
    recent_burns: int


# ---------------------------------------------------------------------------
# system
# ---------------------------------------------------------------------------


class ContractInfoResponse(ApiModel):
    package_hash: str
    name: str
    type: str


class SystemContractsResponse(ApiModel):
    dex: ContractInfoResponse
    router: ContractInfoResponse
    position_manager: ContractInfoResponse
    tokens: list[str]


class SystemHealthResponse(ApiModel):
    status: str
    database: str
    total_pools: int
    timestamp: datetime


M = TypeVar("M", bound=ApiModel)


def page_response(page: Page, schema: type[M]) -> PageResponse[M]:
    return PageResponse[schema](  # type: ignore[valid-type]
        data=[schema.model_validate(item) for item in page.items],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
    )


def data_response(item: object, schema: type[M]) -> DataResponse[M]:
    return DataResponse[schema](data=schema.model_validate(item))  # type: ignore[valid-type]
