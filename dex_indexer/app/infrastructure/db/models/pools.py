from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from dex_indexer.app.infrastructure.db.db_base import BaseDB


class PoolsDB(BaseDB):
    """
    Pool registry.

    One row = one (token0, token1, fee) pool, created by PoolCreated and
    completed (price/tick) by the subsequent Initialize event.
    token0/token1 keep the order emitted by the exchange contract.
    """

    __tablename__ = "pools"
    __table_args__ = (
        UniqueConstraint("token0", "token1", "fee", name="uq_pools_token0_token1_fee"),
        Index("ix_pools_token0", "token0"),
        Index("ix_pools_token1", "token1"),
        Index("ix_pools_pool_address", "pool_address"),
        Index("ix_pools_initialize_deploy_hash", "initialize_deploy_hash"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    token0: Mapped[str] = mapped_column(String(80), nullable=False)
    token1: Mapped[str] = mapped_column(String(80), nullable=False)
    fee: Mapped[int] = mapped_column(Integer, nullable=False)
    tick_spacing: Mapped[int] = mapped_column(Integer, nullable=False)
    pool_address: Mapped[str] = mapped_column(String(80), nullable=False)

    # U256 as decimal string; NULL until Initialize
    sqrt_price_x96: Mapped[str | None] = mapped_column(Text, nullable=True)
    tick: Mapped[int | None] = mapped_column(Integer, nullable=True)
    initialized: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # deploy that carried the applied Initialize event
    initialize_deploy_hash: Mapped[str | None] = mapped_column(String(80), nullable=True)

    deploy_hash: Mapped[str] = mapped_column(String(80), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
