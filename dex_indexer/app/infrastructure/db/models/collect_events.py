from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from dex_indexer.app.infrastructure.db.db_base import BaseDB


class CollectEventsDB(BaseDB):
    """Append-only fee collection events."""

    __tablename__ = "collect_events"
    __table_args__ = (
        Index("ix_collect_events_pool_ts", "pool_id", "timestamp"),
        Index("ix_collect_events_owner", "owner"),
        Index("ix_collect_events_recipient", "recipient"),
        Index("ix_collect_events_deploy_hash", "deploy_hash"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pool_id: Mapped[int] = mapped_column(ForeignKey("pools.id"), nullable=False)

    owner: Mapped[str] = mapped_column(String(80), nullable=False)
    recipient: Mapped[str] = mapped_column(String(80), nullable=False)
    tick_lower: Mapped[int] = mapped_column(Integer, nullable=False)
    tick_upper: Mapped[int] = mapped_column(Integer, nullable=False)

    amount0: Mapped[str] = mapped_column(Text, nullable=False)
    amount1: Mapped[str] = mapped_column(Text, nullable=False)

    deploy_hash: Mapped[str] = mapped_column(String(80), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
