from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from dex_indexer.app.infrastructure.db.db_base import BaseDB


class LiquidityEventsDB(BaseDB):
    """
    Append-only Mint/Burn events of the exchange core.

    Dedup key (checked before insert):
      (deploy_hash, event_type, owner, tick_lower, tick_upper, amount)
    """

    __tablename__ = "liquidity_events"
    __table_args__ = (
        Index("ix_liquidity_events_pool_ts", "pool_id", "timestamp"),
        Index("ix_liquidity_events_owner", "owner"),
        Index("ix_liquidity_events_event_type", "event_type"),
        Index("ix_liquidity_events_deploy_hash", "deploy_hash"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_type: Mapped[str] = mapped_column(String(10), nullable=False)  # mint | burn
    pool_id: Mapped[int] = mapped_column(ForeignKey("pools.id"), nullable=False)

    sender: Mapped[str] = mapped_column(String(80), nullable=False)
    owner: Mapped[str] = mapped_column(String(80), nullable=False)
    tick_lower: Mapped[int] = mapped_column(Integer, nullable=False)
    tick_upper: Mapped[int] = mapped_column(Integer, nullable=False)

    # U128 / U256 as decimal strings
    amount: Mapped[str] = mapped_column(Text, nullable=False)
    amount0: Mapped[str] = mapped_column(Text, nullable=False)
    amount1: Mapped[str] = mapped_column(Text, nullable=False)

    deploy_hash: Mapped[str] = mapped_column(String(80), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
