from __future__ import annotations

from typing import Any, Mapping

from dex_indexer.app.application.services.address import normalize_address

# ---------------------------------------------------------------------------
# Field coercion for CSPR.cloud JSON payloads
# ---------------------------------------------------------------------------


def as_address(value: Any) -> str | None:
    """
    Canonical address from a payload field.

    Keys may arrive as plain strings ("hash-ab12...") or as CLType Key objects
    ({"Account": "account-hash-..."} / {"Contract": "hash-..."}).
    """
    if value is None:
        return None
    if isinstance(value, Mapping):
        if len(value) != 1:
            return None
        value = next(iter(value.values()))
    if not isinstance(value, str):
        return None
    return normalize_address(value.strip()) or None


def as_amount(value: Any, default: str = "0") -> str:
    """
    Arbitrary-precision integer as a decimal string. Never goes through float.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        s = value.strip()
        if not s:
            return default
        if s.lower().startswith("0x"):
            return str(int(s, 16))
        return str(int(s))
    raise ValueError(f"Unsupported amount value: {value!r}")


def as_int(value: Any, default: int | None = None) -> int | None:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip():
        return int(value.strip())
    return default


# ---------------------------------------------------------------------------
# Per-event payload decoding
# ---------------------------------------------------------------------------


def decode_pool_created(data: Mapping[str, Any]) -> dict[str, Any] | None:
    token0 = as_address(data.get("token0"))
    token1 = as_address(data.get("token1"))
    fee = as_int(data.get("fee"))
    if token0 is None or token1 is None or fee is None:
        return None

    return {
        "token0": token0,
        "token1": token1,
        "fee": fee,
        "tick_spacing": as_int(data.get("tick_spacing"), 0),
        "pool_address": as_address(data.get("pool")) or "",
    }


def decode_pool_initialized(data: Mapping[str, Any]) -> dict[str, Any] | None:
    if data.get("sqrt_price_x96") is None:
        return None
    return {
        "sqrt_price_x96": as_amount(data.get("sqrt_price_x96")),
        "tick": as_int(data.get("tick"), 0),
        "pool_address": as_address(data.get("pool")),
    }


def decode_liquidity(data: Mapping[str, Any], *, event_type: str) -> dict[str, Any] | None:
    owner = as_address(data.get("owner"))
    if owner is None:
        return None

    # Burn events carry no separate sender
    sender = as_address(data.get("sender")) or owner

    return {
        "event_type": event_type,
        "sender": sender,
        "owner": owner,
        "tick_lower": as_int(data.get("tick_lower"), 0),
        "tick_upper": as_int(data.get("tick_upper"), 0),
        "amount": as_amount(data.get("amount")),
        "amount0": as_amount(data.get("amount0")),
        "amount1": as_amount(data.get("amount1")),
    }


def decode_collect(data: Mapping[str, Any]) -> dict[str, Any] | None:
    owner = as_address(data.get("owner"))
    recipient = as_address(data.get("recipient"))
    if owner is None or recipient is None:
        return None

    return {
        "owner": owner,
        "recipient": recipient,
        "tick_lower": as_int(data.get("tick_lower"), 0),
        "tick_upper": as_int(data.get("tick_upper"), 0),
        "amount0": as_amount(data.get("amount0")),
        "amount1": as_amount(data.get("amount1")),
    }


def decode_transfer(data: Mapping[str, Any]) -> dict[str, Any] | None:
    to_address = as_address(data.get("to"))
    if to_address is None:
        return None
    return {
        "from_address": as_address(data.get("from")),
        "to_address": to_address,
        "amount": as_amount(data.get("amount")),
    }


def decode_approval(data: Mapping[str, Any]) -> dict[str, Any] | None:
    owner = as_address(data.get("owner"))
    spender = as_address(data.get("spender"))
    if owner is None or spender is None:
        return None
    return {
        "owner": owner,
        "spender": spender,
        "amount": as_amount(data.get("amount")),
    }


def decode_position_minted(data: Mapping[str, Any]) -> dict[str, Any] | None:
    token_id = data.get("token_id")
    owner = as_address(data.get("owner")) or as_address(data.get("recipient"))
    if token_id is None or owner is None:
        return None

    liquidity = data.get("liquidity")
    if liquidity is None:
        liquidity = data.get("amount")

    return {
        "token_id": as_amount(token_id),
        "owner": owner,
        "tick_lower": as_int(data.get("tick_lower"), 0),
        "tick_upper": as_int(data.get("tick_upper"), 0),
        "liquidity": as_amount(liquidity),
        "pool_address": as_address(data.get("pool")),
        "token0": as_address(data.get("token0")),
        "token1": as_address(data.get("token1")),
        "fee": as_int(data.get("fee")),
    }


def decode_liquidity_change(data: Mapping[str, Any]) -> dict[str, Any] | None:
    token_id = data.get("token_id")
    liquidity = data.get("liquidity")
    if token_id is None or liquidity is None:
        return None
    return {
        "token_id": as_amount(token_id),
        "liquidity": int(as_amount(liquidity)),
    }
