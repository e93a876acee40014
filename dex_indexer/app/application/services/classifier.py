from __future__ import annotations

from typing import Any, Mapping

from dex_indexer.app.domain.models import EventEnvelope, EventKind

_EXPLICIT_NAMES: dict[str, EventKind] = {
    "PoolCreated": EventKind.POOL_CREATED,
    "Initialize": EventKind.POOL_INITIALIZED,
    "PoolInitialized": EventKind.POOL_INITIALIZED,
    "Mint": EventKind.MINT,
    "PositionMinted": EventKind.MINT,
    "Burn": EventKind.BURN,
    "Collect": EventKind.COLLECT,
    "Transfer": EventKind.TRANSFER,
    "Approval": EventKind.APPROVAL,
    "IncreaseLiquidity": EventKind.INCREASE_LIQUIDITY,
    "DecreaseLiquidity": EventKind.DECREASE_LIQUIDITY,
}


def _has(payload: Mapping[str, Any], *keys: str) -> bool:
    return all(payload.get(k) is not None for k in keys)


def _present(payload: Mapping[str, Any], key: str) -> bool:
    return key in payload


def classify_payload_shape(payload: Mapping[str, Any]) -> EventKind:
    """
    Shape-sniffing fallback. Rules are checked in priority order; first match wins.

    PoolCreated > PoolInitialized > Mint > Burn > Collect > Transfer > Approval
    """
    if _has(payload, "token0", "token1"):
        return EventKind.POOL_CREATED
    if _has(payload, "sqrt_price_x96"):
        return EventKind.POOL_INITIALIZED
    if _has(payload, "sender", "amount"):
        return EventKind.MINT
    if _has(payload, "owner", "amount") and not _has(payload, "sender") and not _has(payload, "spender"):
        return EventKind.BURN
    if _has(payload, "recipient"):
        return EventKind.COLLECT
    # "from" may legitimately be null (mint-style transfer), so only presence is required
    if _has(payload, "to", "amount") and _present(payload, "from"):
        return EventKind.TRANSFER
    if _has(payload, "owner", "spender", "amount"):
        return EventKind.APPROVAL
    return EventKind.UNKNOWN


def classify(envelope: EventEnvelope) -> EventKind:
    """Explicit event name first, payload shape second, Unknown otherwise."""
    if envelope.name:
        kind = _EXPLICIT_NAMES.get(envelope.name)
        if kind is not None:
            return kind
    return classify_payload_shape(envelope.data)
