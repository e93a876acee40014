from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from dex_indexer.app.application.services.address import normalize_address
from dex_indexer.app.domain.models import (
    ContractCategory,
    MonitoredContract,
    TokenDiscovered,
)

logger = logging.getLogger(__name__)

TokenDiscoveredListener = Callable[[TokenDiscovered], None]


@dataclass(frozen=True)
class RegisteredContracts:
    core: list[MonitoredContract]
    tokens: list[MonitoredContract]


class ContractRegistry:
    """
    Set of contracts currently monitored, keyed by canonical address.

    Core contracts are fixed at startup. Token contracts are added at runtime
    (replayed from persisted pools or discovered from PoolCreated events).
    Registration never touches the network: listeners receive a TokenDiscovered
    message and decide what to do with it.
    """

    def __init__(self) -> None:
        self._core: dict[str, MonitoredContract] = {}
        self._tokens: dict[str, MonitoredContract] = {}
        self._listeners: list[TokenDiscoveredListener] = []

    def subscribe(self, listener: TokenDiscoveredListener) -> None:
        self._listeners.append(listener)

    def register_core(self, contracts: Iterable[MonitoredContract]) -> None:
        for contract in contracts:
            address = normalize_address(contract.address) or contract.address
            if address != contract.address:
                contract = MonitoredContract(
                    address=address,
                    display_name=contract.display_name,
                    category=contract.category,
                )
            self._core[address] = contract

    def register_token(self, address: str, symbol: str | None = None) -> bool:
        """
        Register a fungible-token contract. Returns False if it is already known.
        """
        clean = normalize_address(address)
        if not clean:
            return False

        if clean in self._tokens or clean in self._core:
            return False

        contract = MonitoredContract(
            address=clean,
            display_name=f"Token-{symbol}" if symbol else f"Token-{clean[:8]}",
            category=ContractCategory.FUNGIBLE_TOKEN,
        )
        self._tokens[clean] = contract

        logger.info(
            "Registered token contract %s",
            contract.display_name,
            extra={"address": clean},
        )

        message = TokenDiscovered(contract=contract)
        for listener in self._listeners:
            listener(message)

        return True

    def is_registered(self, address: str) -> bool:
        clean = normalize_address(address)
        return clean in self._core or clean in self._tokens

    def list(self) -> RegisteredContracts:
        return RegisteredContracts(
            core=list(self._core.values()),
            tokens=list(self._tokens.values()),
        )
