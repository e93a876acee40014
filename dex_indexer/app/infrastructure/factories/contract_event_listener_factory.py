from __future__ import annotations

from dex_indexer.app.application.services.contract_event_listener import ContractEventListener
from dex_indexer.app.application.services.contract_registry import ContractRegistry
from dex_indexer.app.application.services.event_router import EventRouter
from dex_indexer.app.application.services.stream_connection_manager import (
    StreamConnectionManager,
)
from dex_indexer.app.config import Settings
from dex_indexer.app.domain.models import ContractCategory, MonitoredContract
from dex_indexer.app.domain.ports.out import DexEventStore, StreamTransport
from dex_indexer.app.infrastructure.streaming.websocket_transport import (
    WebSocketStreamTransport,
)


def core_contracts_from_settings(settings: Settings) -> list[MonitoredContract]:
    """The fixed set of contracts monitored from startup."""
    return [
        MonitoredContract(
            address=settings.dex_contract_package_hash,
            display_name="DEX",
            category=ContractCategory.EXCHANGE_CORE,
        ),
        MonitoredContract(
            address=settings.position_manager_contract_package_hash,
            display_name="PositionManager",
            category=ContractCategory.POSITION_MANAGER,
        ),
        MonitoredContract(
            address=settings.router_contract_package_hash,
            display_name="Router",
            category=ContractCategory.ROUTER,
        ),
    ]


def contract_event_listener_factory(
    *,
    settings: Settings,
    store: DexEventStore,
    transport: StreamTransport | None = None,
) -> ContractEventListener:
    """
    Wire the ingestion pipeline:
    - registry (token discovery publishes TokenDiscovered),
    - router (classification + persistence),
    - connection manager (one websocket per contract, heartbeat + backoff),
    - listener (startup replay and lifecycle).
    """
    if transport is None:
        transport = WebSocketStreamTransport(
            streaming_url=settings.cspr_cloud_streaming_url,
            access_key=settings.cspr_cloud_access_key.get_secret_value(),
        )

    registry = ContractRegistry()
    router = EventRouter(store=store, registry=registry)
    manager = StreamConnectionManager(
        transport=transport,
        handler=router.route,
        heartbeat_message=settings.heartbeat_message,
        heartbeat_timeout=settings.heartbeat_timeout_seconds,
        heartbeat_check_interval=settings.heartbeat_check_interval_seconds,
        max_reconnect_attempts=settings.max_reconnect_attempts,
        reconnect_base_delay=settings.reconnect_base_delay_seconds,
        queue_size=settings.event_queue_size,
    )

    return ContractEventListener(
        store=store,
        registry=registry,
        manager=manager,
        core_contracts=core_contracts_from_settings(settings),
        initial_tokens=settings.initial_tokens,
    )
