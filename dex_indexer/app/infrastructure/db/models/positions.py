from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from dex_indexer.app.infrastructure.db.db_base import BaseDB


class PositionsDB(BaseDB):
    """
    NFT liquidity positions of the position manager.

    deploy_hash is the deploy of the last applied mutation; replays of that
    deploy are ignored.
    """

    __tablename__ = "positions"
    __table_args__ = (
        Index("ix_positions_owner", "owner"),
        Index("ix_positions_pool_id", "pool_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    token_id: Mapped[str] = mapped_column(String(80), nullable=False, unique=True)
    pool_id: Mapped[int] = mapped_column(ForeignKey("pools.id"), nullable=False)

    owner: Mapped[str] = mapped_column(String(80), nullable=False)
    tick_lower: Mapped[int] = mapped_column(Integer, nullable=False)
    tick_upper: Mapped[int] = mapped_column(Integer, nullable=False)
    liquidity: Mapped[str] = mapped_column(Text, nullable=False)

    deploy_hash: Mapped[str] = mapped_column(String(80), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
