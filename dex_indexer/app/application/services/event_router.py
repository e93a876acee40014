from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from dex_indexer.app.application.services.classifier import classify
from dex_indexer.app.application.services.contract_registry import ContractRegistry
from dex_indexer.app.application.services.event_payloads import (
    as_address,
    as_int,
    decode_approval,
    decode_collect,
    decode_liquidity,
    decode_liquidity_change,
    decode_pool_created,
    decode_pool_initialized,
    decode_position_minted,
    decode_transfer,
)
from dex_indexer.app.domain.models import (
    ContractCategory,
    EventEnvelope,
    EventKind,
    MonitoredContract,
)
from dex_indexer.app.domain.ports.out import DexEventStore

logger = logging.getLogger(__name__)

Handler = Callable[[EventEnvelope, MonitoredContract], Awaitable[None]]


class EventRouter:
    """
    Turns classified events into persistence calls.

    Dispatch is two-level: contract category first, EventKind second.
    A failure while handling one event is logged with its context and swallowed,
    so one bad event never tears down the stream it arrived on.
    """

    def __init__(self, *, store: DexEventStore, registry: ContractRegistry) -> None:
        self._store = store
        self._registry = registry

        self._handlers: dict[ContractCategory, dict[EventKind, Handler]] = {
            ContractCategory.EXCHANGE_CORE: {
                EventKind.POOL_CREATED: self._on_pool_created,
                EventKind.POOL_INITIALIZED: self._on_pool_initialized,
                EventKind.MINT: self._on_mint,
                EventKind.BURN: self._on_burn,
                EventKind.COLLECT: self._on_collect,
            },
            ContractCategory.FUNGIBLE_TOKEN: {
                EventKind.TRANSFER: self._on_transfer,
                EventKind.APPROVAL: self._on_approval,
            },
            ContractCategory.POSITION_MANAGER: {
                EventKind.MINT: self._on_position_minted,
                EventKind.INCREASE_LIQUIDITY: self._on_increase_liquidity,
                EventKind.DECREASE_LIQUIDITY: self._on_decrease_liquidity,
            },
            ContractCategory.ROUTER: {},
        }

    async def route(self, envelope: EventEnvelope, contract: MonitoredContract) -> None:
        kind = classify(envelope)
        ctx = self._context(envelope, contract, kind)

        handler = self._handlers.get(contract.category, {}).get(kind)
        if handler is None:
            if kind is EventKind.UNKNOWN:
                logger.warning("Unknown event from %s: %s", contract.display_name, envelope.name, extra=ctx)
            else:
                logger.info("Ignoring %s event from %s", kind.value, contract.display_name, extra=ctx)
            return

        if not envelope.deploy_hash:
            logger.warning(
                "Dropping %s event without deploy hash from %s",
                kind.value,
                contract.display_name,
                extra=ctx,
            )
            return

        logger.debug("Routing %s from %s", kind.value, contract.display_name, extra=ctx)

        try:
            await handler(envelope, contract)
        except Exception:
            logger.exception(
                "Failed to store %s event from %s (deploy %s)",
                kind.value,
                contract.display_name,
                envelope.deploy_hash,
                extra=ctx,
            )

    # ------------------------------------------------------------------
    # exchange core
    # ------------------------------------------------------------------

    async def _on_pool_created(self, envelope: EventEnvelope, contract: MonitoredContract) -> None:
        decoded = decode_pool_created(envelope.data)
        if decoded is None:
            self._log_undecodable(envelope, contract, EventKind.POOL_CREATED)
            return

        # start monitoring the pair before the pool row exists
        self._registry.register_token(decoded["token0"])
        self._registry.register_token(decoded["token1"])

        pool, inserted = await self._store.create_pool(
            **decoded,
            deploy_hash=envelope.deploy_hash,
        )
        if inserted:
            logger.info(
                "Stored pool %s (%s/%s fee=%s)",
                pool.id,
                pool.token0,
                pool.token1,
                pool.fee,
                extra={"pool_id": pool.id, "deploy_hash": envelope.deploy_hash},
            )
        else:
            logger.info("Pool %s already indexed", pool.id, extra={"pool_id": pool.id})

    async def _on_pool_initialized(self, envelope: EventEnvelope, contract: MonitoredContract) -> None:
        decoded = decode_pool_initialized(envelope.data)
        if decoded is None:
            self._log_undecodable(envelope, contract, EventKind.POOL_INITIALIZED)
            return

        pool = await self._store.find_pool_for_initialize(
            pool_address=decoded["pool_address"],
            deploy_hash=envelope.deploy_hash,
        )
        if pool is None:
            logger.warning(
                "No pool found for Initialize event",
                extra=self._context(envelope, contract, EventKind.POOL_INITIALIZED),
            )
            return

        if pool.initialize_deploy_hash == envelope.deploy_hash:
            logger.info("Pool %s already initialized by this deploy", pool.id, extra={"pool_id": pool.id})
            return

        await self._store.mark_pool_initialized(
            pool_id=pool.id,
            sqrt_price_x96=decoded["sqrt_price_x96"],
            tick=decoded["tick"],
            deploy_hash=envelope.deploy_hash,
        )
        logger.info("Pool %s initialized", pool.id, extra={"pool_id": pool.id, "tick": decoded["tick"]})

    async def _on_mint(self, envelope: EventEnvelope, contract: MonitoredContract) -> None:
        await self._store_liquidity(envelope, contract, kind=EventKind.MINT, event_type="mint")

    async def _on_burn(self, envelope: EventEnvelope, contract: MonitoredContract) -> None:
        await self._store_liquidity(envelope, contract, kind=EventKind.BURN, event_type="burn")

    async def _store_liquidity(
        self,
        envelope: EventEnvelope,
        contract: MonitoredContract,
        *,
        kind: EventKind,
        event_type: str,
    ) -> None:
        decoded = decode_liquidity(envelope.data, event_type=event_type)
        if decoded is None:
            self._log_undecodable(envelope, contract, kind)
            return

        pool_id = await self._resolve_pool_id(envelope, contract, kind)
        if pool_id is None:
            return

        stored = await self._store.append_liquidity_event(
            **decoded,
            pool_id=pool_id,
            deploy_hash=envelope.deploy_hash,
            timestamp=envelope.timestamp,
        )
        self._log_append(stored, kind, envelope, pool_id=pool_id)

    async def _on_collect(self, envelope: EventEnvelope, contract: MonitoredContract) -> None:
        decoded = decode_collect(envelope.data)
        if decoded is None:
            self._log_undecodable(envelope, contract, EventKind.COLLECT)
            return

        pool_id = await self._resolve_pool_id(envelope, contract, EventKind.COLLECT)
        if pool_id is None:
            return

        stored = await self._store.append_collect_event(
            **decoded,
            pool_id=pool_id,
            deploy_hash=envelope.deploy_hash,
            timestamp=envelope.timestamp,
        )
        self._log_append(stored, EventKind.COLLECT, envelope, pool_id=pool_id)

    # ------------------------------------------------------------------
    # fungible tokens
    # ------------------------------------------------------------------

    async def _on_transfer(self, envelope: EventEnvelope, contract: MonitoredContract) -> None:
        decoded = decode_transfer(envelope.data)
        if decoded is None:
            self._log_undecodable(envelope, contract, EventKind.TRANSFER)
            return

        stored = await self._store.append_token_transfer(
            **decoded,
            token_address=contract.address,
            deploy_hash=envelope.deploy_hash,
            timestamp=envelope.timestamp,
        )
        self._log_append(stored, EventKind.TRANSFER, envelope, token=contract.address)

    async def _on_approval(self, envelope: EventEnvelope, contract: MonitoredContract) -> None:
        decoded = decode_approval(envelope.data)
        if decoded is None:
            self._log_undecodable(envelope, contract, EventKind.APPROVAL)
            return

        stored = await self._store.append_token_approval(
            **decoded,
            token_address=contract.address,
            deploy_hash=envelope.deploy_hash,
            timestamp=envelope.timestamp,
        )
        self._log_append(stored, EventKind.APPROVAL, envelope, token=contract.address)

    # ------------------------------------------------------------------
    # position manager
    # ------------------------------------------------------------------

    async def _on_position_minted(self, envelope: EventEnvelope, contract: MonitoredContract) -> None:
        decoded = decode_position_minted(envelope.data)
        if decoded is None:
            self._log_undecodable(envelope, contract, EventKind.MINT)
            return

        pool = await self._store.resolve_pool(
            pool_address=decoded["pool_address"],
            token0=decoded["token0"],
            token1=decoded["token1"],
            fee=decoded["fee"],
        )
        if pool is None:
            logger.warning(
                "No pool found for position %s",
                decoded["token_id"],
                extra=self._context(envelope, contract, EventKind.MINT),
            )
            return

        position = await self._store.upsert_position(
            token_id=decoded["token_id"],
            pool_id=pool.id,
            owner=decoded["owner"],
            tick_lower=decoded["tick_lower"],
            tick_upper=decoded["tick_upper"],
            liquidity=decoded["liquidity"],
            deploy_hash=envelope.deploy_hash,
        )
        logger.info("Stored position %s", position.token_id, extra={"pool_id": pool.id})

    async def _on_increase_liquidity(self, envelope: EventEnvelope, contract: MonitoredContract) -> None:
        await self._change_position(envelope, contract, kind=EventKind.INCREASE_LIQUIDITY, sign=1)

    async def _on_decrease_liquidity(self, envelope: EventEnvelope, contract: MonitoredContract) -> None:
        await self._change_position(envelope, contract, kind=EventKind.DECREASE_LIQUIDITY, sign=-1)

    async def _change_position(
        self,
        envelope: EventEnvelope,
        contract: MonitoredContract,
        *,
        kind: EventKind,
        sign: int,
    ) -> None:
        decoded = decode_liquidity_change(envelope.data)
        if decoded is None:
            self._log_undecodable(envelope, contract, kind)
            return

        position = await self._store.adjust_position_liquidity(
            token_id=decoded["token_id"],
            delta=sign * decoded["liquidity"],
            deploy_hash=envelope.deploy_hash,
        )
        if position is None:
            logger.warning(
                "Position %s not indexed, skipping %s",
                decoded["token_id"],
                kind.value,
                extra=self._context(envelope, contract, kind),
            )

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    async def _resolve_pool_id(
        self,
        envelope: EventEnvelope,
        contract: MonitoredContract,
        kind: EventKind,
    ) -> int | None:
        data = envelope.data
        pool = await self._store.resolve_pool(
            pool_address=as_address(data.get("pool")),
            token0=as_address(data.get("token0")),
            token1=as_address(data.get("token1")),
            fee=as_int(data.get("fee")),
        )
        if pool is None:
            logger.warning(
                "No pool found for %s event",
                kind.value,
                extra=self._context(envelope, contract, kind),
            )
            return None
        return pool.id

    def _log_undecodable(self, envelope: EventEnvelope, contract: MonitoredContract, kind: EventKind) -> None:
        logger.warning(
            "Dropping %s event with unexpected payload from %s",
            kind.value,
            contract.display_name,
            extra=self._context(envelope, contract, kind),
        )

    def _log_append(self, stored: bool, kind: EventKind, envelope: EventEnvelope, **fields: Any) -> None:
        if stored:
            logger.info("Stored %s event", kind.value, extra={"deploy_hash": envelope.deploy_hash, **fields})
        else:
            logger.info("Duplicate %s event skipped", kind.value, extra={"deploy_hash": envelope.deploy_hash, **fields})

    @staticmethod
    def _context(envelope: EventEnvelope, contract: MonitoredContract, kind: EventKind) -> dict[str, Any]:
        return {
            "event_kind": kind.value,
            "event_name": envelope.name,
            "contract": contract.display_name,
            "category": contract.category.value,
            "deploy_hash": envelope.deploy_hash,
        }
