from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from dex_indexer.app.infrastructure.db.db_base import BaseDB


class TokenApprovalsDB(BaseDB):
    """
    Append-only Approval events.

    The latest row per (token_address, owner, spender) is the effective allowance.
    """

    __tablename__ = "token_approvals"
    __table_args__ = (
        Index("ix_token_approvals_key", "token_address", "owner", "spender"),
        Index("ix_token_approvals_spender", "spender"),
        Index("ix_token_approvals_deploy_hash", "deploy_hash"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    token_address: Mapped[str] = mapped_column(String(80), nullable=False)
    owner: Mapped[str] = mapped_column(String(80), nullable=False)
    spender: Mapped[str] = mapped_column(String(80), nullable=False)
    amount: Mapped[str] = mapped_column(Text, nullable=False)

    deploy_hash: Mapped[str] = mapped_column(String(80), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
