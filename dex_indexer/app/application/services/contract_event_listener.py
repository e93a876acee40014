from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from dex_indexer.app.application.services.contract_registry import ContractRegistry
from dex_indexer.app.application.services.stream_connection_manager import (
    StreamConnectionManager,
)
from dex_indexer.app.domain.models import ConnectionState, MonitoredContract
from dex_indexer.app.domain.ports.out import DexEventStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MonitoredContractsView:
    core: list[MonitoredContract]
    tokens: list[MonitoredContract]
    total_connections: int
    states: dict[str, ConnectionState]


class ContractEventListener:
    """
    Owns the ingestion topology: registry, connection manager, router and store.

    Startup:
    - register and connect the core contracts (exchange, position manager, router),
    - replay token contracts from persisted pools so monitoring survives restarts,
    - fall back to the configured initial token set if the replay fails.
    """

    def __init__(
        self,
        *,
        store: DexEventStore,
        registry: ContractRegistry,
        manager: StreamConnectionManager,
        core_contracts: Iterable[MonitoredContract],
        initial_tokens: Iterable[str] = (),
    ) -> None:
        self._store = store
        self._registry = registry
        self._manager = manager
        self._core_contracts = list(core_contracts)
        self._initial_tokens = list(initial_tokens)
        self._stopped = asyncio.Event()

        self._registry.subscribe(self._manager.on_token_discovered)

    async def start(self) -> None:
        logger.info("Starting multi-contract event listener")

        self._registry.register_core(self._core_contracts)
        for contract in self._registry.list().core:
            self._manager.watch(contract)

        await self._load_existing_token_contracts()

        view = self.monitored_contracts()
        logger.info(
            "Monitoring %s core and %s token contracts",
            len(view.core),
            len(view.tokens),
        )

    async def _load_existing_token_contracts(self) -> None:
        try:
            tokens = await self._store.unique_tokens()
        except Exception:
            logger.exception("Failed to load token contracts from pools, using configured tokens")
            tokens = []
        else:
            logger.info("Loaded %s token contracts from persisted pools", len(tokens))

        for address in [*tokens, *self._initial_tokens]:
            self._registry.register_token(address)

    def add_token_contract(self, address: str, symbol: str | None = None) -> bool:
        """Manually start monitoring a token contract while running."""
        added = self._registry.register_token(address, symbol=symbol)
        if not added:
            logger.warning("Token %s is already being monitored", address)
        return added

    def monitored_contracts(self) -> MonitoredContractsView:
        registered = self._registry.list()
        return MonitoredContractsView(
            core=registered.core,
            tokens=registered.tokens,
            total_connections=self._manager.connection_count,
            states=self._manager.states(),
        )

    async def run_until_stopped(self) -> None:
        await self._stopped.wait()

    def request_stop(self) -> None:
        """Release run_until_stopped(); the caller then awaits stop()."""
        self._stopped.set()

    async def stop(self) -> None:
        logger.info("Stopping multi-contract event listener")
        await self._manager.stop()
        self._stopped.set()
