from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from dex_indexer.app.infrastructure.db.db_base import BaseDB


class TokenTransfersDB(BaseDB):
    """
    Append-only Transfer events of every monitored fungible token.

    from_address IS NULL marks a mint (transfer from nothing).
    """

    __tablename__ = "token_transfers"
    __table_args__ = (
        Index("ix_token_transfers_token_ts", "token_address", "timestamp"),
        Index("ix_token_transfers_from", "from_address"),
        Index("ix_token_transfers_to", "to_address"),
        Index("ix_token_transfers_deploy_hash", "deploy_hash"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    token_address: Mapped[str] = mapped_column(String(80), nullable=False)
    from_address: Mapped[str | None] = mapped_column(String(80), nullable=True)
    to_address: Mapped[str] = mapped_column(String(80), nullable=False)
    amount: Mapped[str] = mapped_column(Text, nullable=False)

    deploy_hash: Mapped[str] = mapped_column(String(80), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
