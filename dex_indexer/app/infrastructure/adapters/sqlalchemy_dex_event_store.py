from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any, TypeVar

from sqlalchemy import ColumnElement, Select, Table, and_, func, or_, select, text, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

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
from dex_indexer.app.infrastructure.db.models import (
    CollectEventsDB,
    LiquidityEventsDB,
    PoolsDB,
    PositionsDB,
    TokenApprovalsDB,
    TokenTransfersDB,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_pools: Table = PoolsDB.__table__  # type: ignore[assignment]
_liquidity: Table = LiquidityEventsDB.__table__  # type: ignore[assignment]
_collects: Table = CollectEventsDB.__table__  # type: ignore[assignment]
_transfers: Table = TokenTransfersDB.__table__  # type: ignore[assignment]
_approvals: Table = TokenApprovalsDB.__table__  # type: ignore[assignment]
_positions: Table = PositionsDB.__table__  # type: ignore[assignment]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return column.is_(None) if value is None else column == value


def _sum(values: Iterable[str | None]) -> str:
    # u256 amounts: python int, never float
    return str(sum(int(v) for v in values if v))


def _to_pool(r: Mapping[str, Any]) -> Pool:
    return Pool(
        id=r["id"],
        token0=r["token0"],
        token1=r["token1"],
        fee=r["fee"],
        tick_spacing=r["tick_spacing"],
        pool_address=r["pool_address"],
        sqrt_price_x96=r["sqrt_price_x96"],
        tick=r["tick"],
        initialized=bool(r["initialized"]),
        deploy_hash=r["deploy_hash"],
        created_at=r["created_at"],
        updated_at=r["updated_at"],
        initialize_deploy_hash=r["initialize_deploy_hash"],
    )


def _to_liquidity_event(r: Mapping[str, Any]) -> LiquidityEvent:
    return LiquidityEvent(
        id=r["id"],
        event_type=r["event_type"],
        pool_id=r["pool_id"],
        sender=r["sender"],
        owner=r["owner"],
        tick_lower=r["tick_lower"],
        tick_upper=r["tick_upper"],
        amount=r["amount"],
        amount0=r["amount0"],
        amount1=r["amount1"],
        deploy_hash=r["deploy_hash"],
        timestamp=r["timestamp"],
    )


def _to_collect_event(r: Mapping[str, Any]) -> CollectEvent:
    return CollectEvent(
        id=r["id"],
        pool_id=r["pool_id"],
        owner=r["owner"],
        recipient=r["recipient"],
        tick_lower=r["tick_lower"],
        tick_upper=r["tick_upper"],
        amount0=r["amount0"],
        amount1=r["amount1"],
        deploy_hash=r["deploy_hash"],
        timestamp=r["timestamp"],
    )


def _to_transfer(r: Mapping[str, Any]) -> TokenTransfer:
    return TokenTransfer(
        id=r["id"],
        token_address=r["token_address"],
        from_address=r["from_address"],
        to_address=r["to_address"],
        amount=r["amount"],
        deploy_hash=r["deploy_hash"],
        timestamp=r["timestamp"],
    )


def _to_approval(r: Mapping[str, Any]) -> TokenApproval:
    return TokenApproval(
        id=r["id"],
        token_address=r["token_address"],
        owner=r["owner"],
        spender=r["spender"],
        amount=r["amount"],
        deploy_hash=r["deploy_hash"],
        timestamp=r["timestamp"],
    )


def _to_position(r: Mapping[str, Any]) -> Position:
    return Position(
        id=r["id"],
        token_id=r["token_id"],
        pool_id=r["pool_id"],
        owner=r["owner"],
        tick_lower=r["tick_lower"],
        tick_upper=r["tick_upper"],
        liquidity=r["liquidity"],
        deploy_hash=r["deploy_hash"],
        created_at=r["created_at"],
        updated_at=r["updated_at"],
    )


class SqlAlchemyDexEventStore:
    """
    Persistence adapter for normalized DEX events.

    Strategy:
    - Pools are a registry keyed by (token0, token1, fee); the unique constraint
      is the final arbiter when two writers race on the same PoolCreated.
    - Event tables are append-only. Each append first looks up its dedup key and
      skips the insert if a row already exists, so backfill + live replays are harmless.
    - Positions are mutable; the row remembers the deploy hash of the last applied
      mutation and ignores replays of it.

    Statements are plain SQLAlchemy Core so the adapter runs on PostgreSQL
    (asyncpg) and SQLite (aiosqlite) alike.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    # ------------------------------------------------------------------
    # pools
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
        now = _utcnow()
        try:
            async with self._engine.begin() as conn:
                existing = await self._select_pool_by_key(conn, token0=token0, token1=token1, fee=fee)
                if existing is not None:
                    return existing, False

                result = await conn.execute(
                    _pools.insert().values(
                        token0=token0,
                        token1=token1,
                        fee=fee,
                        tick_spacing=tick_spacing,
                        pool_address=pool_address,
                        sqrt_price_x96=None,
                        tick=None,
                        initialized=False,
                        deploy_hash=deploy_hash,
                        created_at=now,
                        updated_at=now,
                    )
                )
                pool_id = result.inserted_primary_key[0]
                row = (await conn.execute(select(_pools).where(_pools.c.id == pool_id))).mappings().one()
                return _to_pool(row), True
        except IntegrityError:
            # lost the race against a concurrent insert of the same key
            logger.info(
                "Pool insert collided with existing row",
                extra={"token0": token0, "token1": token1, "fee": fee},
            )
            async with self._engine.connect() as conn:
                existing = await self._select_pool_by_key(conn, token0=token0, token1=token1, fee=fee)
            if existing is None:
                raise
            return existing, False

    async def find_pool_for_initialize(
        self,
        *,
        pool_address: str | None,
        deploy_hash: str | None,
    ) -> Pool | None:
        async with self._engine.connect() as conn:
            if deploy_hash:
                # replayed Initialize: the pool it already initialized
                pool = await self._first_pool(conn, _pools.c.initialize_deploy_hash == deploy_hash)
                if pool is not None:
                    return pool

            if pool_address:
                pool = await self._unique_pool_by_address(conn, pool_address)
                if pool is not None:
                    return pool

            if deploy_hash:
                pool = await self._first_pool(
                    conn,
                    _pools.c.deploy_hash == deploy_hash,
                    _pools.c.initialized.is_(False),
                )
                if pool is not None:
                    return pool

            return await self._first_pool(conn, _pools.c.initialized.is_(False))

    async def mark_pool_initialized(
        self,
        *,
        pool_id: int,
        sqrt_price_x96: str,
        tick: int,
        deploy_hash: str | None = None,
    ) -> None:
        async with self._engine.begin() as conn:
            await conn.execute(
                update(_pools)
                .where(_pools.c.id == pool_id)
                .values(
                    sqrt_price_x96=sqrt_price_x96,
                    tick=tick,
                    initialized=True,
                    initialize_deploy_hash=deploy_hash,
                    updated_at=_utcnow(),
                )
            )

    async def resolve_pool(
        self,
        *,
        pool_address: str | None = None,
        token0: str | None = None,
        token1: str | None = None,
        fee: int | None = None,
    ) -> Pool | None:
        async with self._engine.connect() as conn:
            if pool_address:
                pool = await self._unique_pool_by_address(conn, pool_address)
                if pool is not None:
                    return pool

            if token0 and token1 and fee is not None:
                pool = await self._select_pool_by_key(conn, token0=token0, token1=token1, fee=fee)
                if pool is not None:
                    return pool

            # payload carries no pool identity: fall back to the most recent pool
            return await self._first_pool(conn)

    async def unique_tokens(self) -> list[str]:
        async with self._engine.connect() as conn:
            rows = await conn.execute(
                select(_pools.c.token0).union(select(_pools.c.token1))
            )
            return sorted({r[0] for r in rows if r[0]})

    async def find_pools(
        self, *, token: str | None = None, limit: int = 50, offset: int = 0
    ) -> Page[Pool]:
        where = []
        if token:
            where.append(or_(_pools.c.token0 == token, _pools.c.token1 == token))
        return await self._page(
            _pools,
            where=where,
            order_by=(_pools.c.created_at.desc(), _pools.c.id.desc()),
            limit=limit,
            offset=offset,
            to_entity=_to_pool,
        )

    async def find_pool(self, *, pool_id: int) -> Pool | None:
        async with self._engine.connect() as conn:
            return await self._first_pool(conn, _pools.c.id == pool_id)

    async def find_pool_by_key(self, *, token0: str, token1: str, fee: int) -> Pool | None:
        async with self._engine.connect() as conn:
            return await self._select_pool_by_key(conn, token0=token0, token1=token1, fee=fee)

    async def pool_stats(self) -> PoolStats:
        async with self._engine.connect() as conn:
            total = (await conn.execute(select(func.count()).select_from(_pools))).scalar_one()
            initialized = (
                await conn.execute(
                    select(func.count()).select_from(_pools).where(_pools.c.initialized.is_(True))
                )
            ).scalar_one()
        tokens = await self.unique_tokens()
        return PoolStats(
            total_pools=total,
            initialized_pools=initialized,
            uninitialized_pools=total - initialized,
            unique_tokens=len(tokens),
        )

    # ------------------------------------------------------------------
    # append-only events
    # ------------------------------------------------------------------

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
    ) -> bool:
        return await self._append(
            _liquidity,
            dedup={
                "deploy_hash": deploy_hash,
                "event_type": event_type,
                "owner": owner,
                "tick_lower": tick_lower,
                "tick_upper": tick_upper,
                "amount": amount,
            },
            values={
                "pool_id": pool_id,
                "sender": sender,
                "amount0": amount0,
                "amount1": amount1,
                "timestamp": timestamp or _utcnow(),
            },
        )

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
    ) -> bool:
        return await self._append(
            _collects,
            dedup={
                "deploy_hash": deploy_hash,
                "owner": owner,
                "recipient": recipient,
                "tick_lower": tick_lower,
                "tick_upper": tick_upper,
            },
            values={
                "pool_id": pool_id,
                "amount0": amount0,
                "amount1": amount1,
                "timestamp": timestamp or _utcnow(),
            },
        )

    async def append_token_transfer(
        self,
        *,
        token_address: str,
        from_address: str | None,
        to_address: str,
        amount: str,
        deploy_hash: str,
        timestamp: datetime | None = None,
    ) -> bool:
        return await self._append(
            _transfers,
            dedup={
                "deploy_hash": deploy_hash,
                "token_address": token_address,
                "from_address": from_address,
                "to_address": to_address,
                "amount": amount,
            },
            values={"timestamp": timestamp or _utcnow()},
        )

    async def append_token_approval(
        self,
        *,
        token_address: str,
        owner: str,
        spender: str,
        amount: str,
        deploy_hash: str,
        timestamp: datetime | None = None,
    ) -> bool:
        return await self._append(
            _approvals,
            dedup={
                "deploy_hash": deploy_hash,
                "token_address": token_address,
                "owner": owner,
                "spender": spender,
                "amount": amount,
            },
            values={"timestamp": timestamp or _utcnow()},
        )

    async def find_liquidity_events(
        self,
        *,
        pool_id: int | None = None,
        owner: str | None = None,
        event_type: str | None = None,
        since: datetime | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Page[LiquidityEvent]:
        where = []
        if pool_id is not None:
            where.append(_liquidity.c.pool_id == pool_id)
        if owner:
            where.append(_liquidity.c.owner == owner)
        if event_type:
            where.append(_liquidity.c.event_type == event_type)
        if since is not None:
            where.append(_liquidity.c.timestamp >= since)
        return await self._page(
            _liquidity,
            where=where,
            order_by=(_liquidity.c.timestamp.desc(), _liquidity.c.id.desc()),
            limit=limit,
            offset=offset,
            to_entity=_to_liquidity_event,
        )

    async def find_collect_events(
        self,
        *,
        pool_id: int | None = None,
        owner: str | None = None,
        recipient: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Page[CollectEvent]:
        where = []
        if pool_id is not None:
            where.append(_collects.c.pool_id == pool_id)
        if owner:
            where.append(_collects.c.owner == owner)
        if recipient:
            where.append(_collects.c.recipient == recipient)
        return await self._page(
            _collects,
            where=where,
            order_by=(_collects.c.timestamp.desc(), _collects.c.id.desc()),
            limit=limit,
            offset=offset,
            to_entity=_to_collect_event,
        )

    async def find_token_transfers(
        self,
        *,
        token_address: str | None = None,
        address: str | None = None,
        mints_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> Page[TokenTransfer]:
        where = []
        if token_address:
            where.append(_transfers.c.token_address == token_address)
        if address:
            where.append(or_(_transfers.c.from_address == address, _transfers.c.to_address == address))
        if mints_only:
            where.append(_transfers.c.from_address.is_(None))
        return await self._page(
            _transfers,
            where=where,
            order_by=(_transfers.c.timestamp.desc(), _transfers.c.id.desc()),
            limit=limit,
            offset=offset,
            to_entity=_to_transfer,
        )

    async def find_token_approvals(
        self,
        *,
        token_address: str | None = None,
        owner: str | None = None,
        spender: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Page[TokenApproval]:
        where = []
        if token_address:
            where.append(_approvals.c.token_address == token_address)
        if owner:
            where.append(_approvals.c.owner == owner)
        if spender:
            where.append(_approvals.c.spender == spender)
        return await self._page(
            _approvals,
            where=where,
            order_by=(_approvals.c.timestamp.desc(), _approvals.c.id.desc()),
            limit=limit,
            offset=offset,
            to_entity=_to_approval,
        )

    async def current_approval(
        self, *, token_address: str, owner: str, spender: str
    ) -> TokenApproval | None:
        stmt = (
            select(_approvals)
            .where(
                _approvals.c.token_address == token_address,
                _approvals.c.owner == owner,
                _approvals.c.spender == spender,
            )
            .order_by(_approvals.c.timestamp.desc(), _approvals.c.id.desc())
            .limit(1)
        )
        async with self._engine.connect() as conn:
            row = (await conn.execute(stmt)).mappings().first()
        return _to_approval(row) if row is not None else None

    # ------------------------------------------------------------------
    # positions
    # ------------------------------------------------------------------

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
    ) -> Position:
        now = _utcnow()
        async with self._engine.begin() as conn:
            existing = await self._select_position(conn, token_id)

            if existing is None:
                await conn.execute(
                    _positions.insert().values(
                        token_id=token_id,
                        pool_id=pool_id,
                        owner=owner,
                        tick_lower=tick_lower,
                        tick_upper=tick_upper,
                        liquidity=liquidity,
                        deploy_hash=deploy_hash,
                        created_at=now,
                        updated_at=now,
                    )
                )
            elif deploy_hash and existing.deploy_hash == deploy_hash:
                return existing
            else:
                await conn.execute(
                    update(_positions)
                    .where(_positions.c.token_id == token_id)
                    .values(
                        pool_id=pool_id,
                        owner=owner,
                        tick_lower=tick_lower,
                        tick_upper=tick_upper,
                        liquidity=liquidity,
                        deploy_hash=deploy_hash,
                        updated_at=now,
                    )
                )

            return await self._select_position(conn, token_id)  # type: ignore[return-value]

    async def adjust_position_liquidity(
        self,
        *,
        token_id: str,
        delta: int,
        deploy_hash: str,
    ) -> Position | None:
        async with self._engine.begin() as conn:
            existing = await self._select_position(conn, token_id)
            if existing is None:
                return None
            if deploy_hash and existing.deploy_hash == deploy_hash:
                logger.info(
                    "Position %s already reflects deploy %s",
                    token_id,
                    deploy_hash,
                    extra={"token_id": token_id, "deploy_hash": deploy_hash},
                )
                return existing

            liquidity = max(int(existing.liquidity) + delta, 0)
            await conn.execute(
                update(_positions)
                .where(_positions.c.token_id == token_id)
                .values(liquidity=str(liquidity), deploy_hash=deploy_hash, updated_at=_utcnow())
            )
            return await self._select_position(conn, token_id)

    async def find_positions(
        self,
        *,
        owner: str | None = None,
        pool_id: int | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Page[Position]:
        where = []
        if owner:
            where.append(_positions.c.owner == owner)
        if pool_id is not None:
            where.append(_positions.c.pool_id == pool_id)
        return await self._page(
            _positions,
            where=where,
            order_by=(_positions.c.created_at.desc(), _positions.c.id.desc()),
            limit=limit,
            offset=offset,
            to_entity=_to_position,
        )

    async def find_position(self, *, token_id: str) -> Position | None:
        async with self._engine.connect() as conn:
            return await self._select_position(conn, token_id)

    # ------------------------------------------------------------------
    # aggregates
    # ------------------------------------------------------------------

    async def pool_liquidity_stats(self, *, pool_id: int) -> PoolLiquidityStats:
        stmt = select(
            _liquidity.c.event_type,
            _liquidity.c.amount0,
            _liquidity.c.amount1,
        ).where(_liquidity.c.pool_id == pool_id)

        async with self._engine.connect() as conn:
            rows = (await conn.execute(stmt)).mappings().all()

        return PoolLiquidityStats(
            pool_id=pool_id,
            total_mints=sum(1 for r in rows if r["event_type"] == "mint"),
            total_burns=sum(1 for r in rows if r["event_type"] == "burn"),
            total_volume0=_sum(r["amount0"] for r in rows),
            total_volume1=_sum(r["amount1"] for r in rows),
        )

    async def pool_fees_collected(self, *, pool_id: int) -> PoolFeeStats:
        stmt = select(_collects.c.amount0, _collects.c.amount1).where(_collects.c.pool_id == pool_id)

        async with self._engine.connect() as conn:
            rows = (await conn.execute(stmt)).mappings().all()

        return PoolFeeStats(
            pool_id=pool_id,
            collect_count=len(rows),
            total_amount0=_sum(r["amount0"] for r in rows),
            total_amount1=_sum(r["amount1"] for r in rows),
        )

    async def token_volume(self, *, token_address: str, hours: int = 24) -> TokenVolume:
        since = _utcnow() - timedelta(hours=hours)
        stmt = select(_transfers.c.amount).where(
            _transfers.c.token_address == token_address,
            _transfers.c.timestamp >= since,
        )

        async with self._engine.connect() as conn:
            amounts = (await conn.execute(stmt)).scalars().all()

        return TokenVolume(
            token_address=token_address,
            hours=hours,
            transfer_count=len(amounts),
            total_volume=_sum(amounts),
        )

    async def position_stats(self, *, owner: str) -> PositionStats:
        stmt = select(_positions.c.pool_id, _positions.c.liquidity).where(_positions.c.owner == owner)

        async with self._engine.connect() as conn:
            rows = (await conn.execute(stmt)).mappings().all()

        return PositionStats(
            owner=owner,
            total_positions=len(rows),
            active_pools=len({r["pool_id"] for r in rows}),
            total_liquidity=_sum(r["liquidity"] for r in rows),
        )

    async def liquidity_event_counts(
        self, *, pool_id: int | None = None, since: datetime | None = None
    ) -> LiquidityEventCounts:
        stmt = select(_liquidity.c.event_type, func.count().label("n")).group_by(_liquidity.c.event_type)
        if pool_id is not None:
            stmt = stmt.where(_liquidity.c.pool_id == pool_id)
        if since is not None:
            stmt = stmt.where(_liquidity.c.timestamp >= since)

        async with self._engine.connect() as conn:
            counts = {r["event_type"]: r["n"] for r in (await conn.execute(stmt)).mappings()}

        return LiquidityEventCounts(
            total_events=sum(counts.values()),
            mint_events=counts.get("mint", 0),
            burn_events=counts.get("burn", 0),
        )

    async def ping(self) -> None:
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    async def _append(
        self,
        table: Table,
        *,
        dedup: dict[str, Any],
        values: dict[str, Any],
    ) -> bool:
        exists_stmt = (
            select(table.c.id)
            .where(and_(*(_eq(table.c[name], value) for name, value in dedup.items())))
            .limit(1)
        )

        async with self._engine.begin() as conn:
            if (await conn.execute(exists_stmt)).first() is not None:
                return False
            await conn.execute(table.insert().values(**dedup, **values))
        return True

    async def _page(
        self,
        table: Table,
        *,
        where: list[ColumnElement[bool]],
        order_by: tuple[Any, ...],
        limit: int,
        offset: int,
        to_entity: Callable[[Mapping[str, Any]], T],
    ) -> Page[T]:
        count_stmt: Select[Any] = select(func.count()).select_from(table)
        rows_stmt: Select[Any] = select(table)
        for cond in where:
            count_stmt = count_stmt.where(cond)
            rows_stmt = rows_stmt.where(cond)
        rows_stmt = rows_stmt.order_by(*order_by).limit(limit).offset(offset)

        async with self._engine.connect() as conn:
            total = (await conn.execute(count_stmt)).scalar_one()
            rows = (await conn.execute(rows_stmt)).mappings().all()

        return Page(items=[to_entity(r) for r in rows], total=total, limit=limit, offset=offset)

    @staticmethod
    async def _first_pool(conn: AsyncConnection, *where: ColumnElement[bool]) -> Pool | None:
        stmt = select(_pools)
        for cond in where:
            stmt = stmt.where(cond)
        stmt = stmt.order_by(_pools.c.created_at.desc(), _pools.c.id.desc()).limit(1)
        row = (await conn.execute(stmt)).mappings().first()
        return _to_pool(row) if row is not None else None

    @staticmethod
    async def _unique_pool_by_address(conn: AsyncConnection, pool_address: str) -> Pool | None:
        """
        Pool whose address matches, only when no other pool shares it.

        Some exchange builds report their own package hash as `pool` for
        every pool, which identifies nothing.
        """
        stmt = select(_pools).where(_pools.c.pool_address == pool_address).limit(2)
        rows = (await conn.execute(stmt)).mappings().all()
        return _to_pool(rows[0]) if len(rows) == 1 else None

    @classmethod
    async def _select_pool_by_key(
        cls, conn: AsyncConnection, *, token0: str, token1: str, fee: int
    ) -> Pool | None:
        return await cls._first_pool(
            conn,
            _pools.c.token0 == token0,
            _pools.c.token1 == token1,
            _pools.c.fee == fee,
        )

    @staticmethod
    async def _select_position(conn: AsyncConnection, token_id: str) -> Position | None:
        row = (
            await conn.execute(select(_positions).where(_positions.c.token_id == token_id))
        ).mappings().first()
        return _to_position(row) if row is not None else None
