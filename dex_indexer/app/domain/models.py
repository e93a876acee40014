from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

from dex_indexer.app.domain.exceptions import MalformedFrameError


class ContractCategory(str, Enum):
    EXCHANGE_CORE = "exchange-core"
    POSITION_MANAGER = "position-manager"
    ROUTER = "router"
    FUNGIBLE_TOKEN = "fungible-token"


class EventKind(str, Enum):
    POOL_CREATED = "PoolCreated"
    POOL_INITIALIZED = "PoolInitialized"
    MINT = "Mint"
    BURN = "Burn"
    COLLECT = "Collect"
    TRANSFER = "Transfer"
    APPROVAL = "Approval"
    # position-manager only, never produced by shape sniffing
    INCREASE_LIQUIDITY = "IncreaseLiquidity"
    DECREASE_LIQUIDITY = "DecreaseLiquidity"
    UNKNOWN = "Unknown"


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    ERRORED = "errored"
    FAILED = "failed"
    STOPPED = "stopped"


@dataclass(frozen=True)
class MonitoredContract:
    """
    One contract package the indexer keeps a live stream open for.

    `address` is always the canonical (prefix-stripped) package hash.
    """

    address: str
    display_name: str
    category: ContractCategory


@dataclass(frozen=True)
class TokenDiscovered:
    """Emitted by the registry when a new fungible-token contract is registered."""

    contract: MonitoredContract


@dataclass(frozen=True)
class EventEnvelope:
    """
    Decoded event as delivered by the streaming API (or the historical REST API).

    Live frame shape:
        {"data": {"name": "...", "data": {...}}, "extra": {"deploy_hash": "..."}}
    """

    name: str | None
    data: Mapping[str, Any]
    deploy_hash: str | None = None
    timestamp: datetime | None = None
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_frame(cls, frame: Any) -> "EventEnvelope":
        if not isinstance(frame, dict):
            raise MalformedFrameError(f"Frame is not a JSON object: {type(frame).__name__}")

        body = frame.get("data")
        if not isinstance(body, dict):
            raise MalformedFrameError("Frame has no 'data' object")

        payload = body.get("data")
        if not isinstance(payload, dict):
            raise MalformedFrameError("Frame has no 'data.data' payload object")

        extra = frame.get("extra") if isinstance(frame.get("extra"), dict) else {}
        name = body.get("name")

        return cls(
            name=name if isinstance(name, str) and name else None,
            data=payload,
            deploy_hash=_require_deploy_hash(extra.get("deploy_hash")),
            timestamp=_parse_timestamp(extra.get("timestamp") or frame.get("timestamp")),
            raw=frame,
        )

    @classmethod
    def from_historical(cls, item: Mapping[str, Any]) -> "EventEnvelope":
        """
        Build an envelope from one item of the paginated contract-package events endpoint.

        Items carry the event name in `event_type_name` (or `name`) and the payload
        in `data`; deploy hash and timestamp sit at the top level.
        """
        payload = item.get("data")
        if not isinstance(payload, dict):
            raise MalformedFrameError("Historical event has no 'data' payload object")

        name = item.get("event_type_name") or item.get("name")
        return cls(
            name=name if isinstance(name, str) and name else None,
            data=payload,
            deploy_hash=_require_deploy_hash(item.get("deploy_hash")),
            timestamp=_parse_timestamp(item.get("timestamp")),
            raw=dict(item),
        )


def _require_deploy_hash(value: Any) -> str:
    # part of every dedup key
    if not isinstance(value, str) or not value.strip():
        raise MalformedFrameError("Event has no deploy hash")
    return value.strip()


def _parse_timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        # epoch millis vs seconds
        seconds = value / 1000 if value > 10**11 else value
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    if isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None
