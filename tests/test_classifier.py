from __future__ import annotations

from dex_indexer.app.application.services.classifier import classify, classify_payload_shape
from dex_indexer.app.domain.models import EventEnvelope, EventKind


def _envelope(name, data):
    return EventEnvelope(name=name, data=data)


# ---------------------------------------------------------------------------
# explicit names
# ---------------------------------------------------------------------------


def test_explicit_name_wins_over_shape():
    # payload looks like a PoolCreated, name says Mint
    envelope = _envelope("Mint", {"token0": "a", "token1": "b", "sender": "s", "amount": "1"})
    assert classify(envelope) is EventKind.MINT


def test_initialize_name_maps_to_pool_initialized():
    assert classify(_envelope("Initialize", {})) is EventKind.POOL_INITIALIZED


def test_position_manager_names_are_recognised():
    assert classify(_envelope("IncreaseLiquidity", {"token_id": "1"})) is EventKind.INCREASE_LIQUIDITY
    assert classify(_envelope("DecreaseLiquidity", {"token_id": "1"})) is EventKind.DECREASE_LIQUIDITY


def test_unrecognised_name_falls_back_to_shape():
    envelope = _envelope("SomethingNew", {"sqrt_price_x96": "79228162514264337593543950336", "tick": 0})
    assert classify(envelope) is EventKind.POOL_INITIALIZED


# ---------------------------------------------------------------------------
# shape sniffing
# ---------------------------------------------------------------------------


def test_pool_created_shape():
    payload = {"token0": "a", "token1": "b", "fee": 3000, "tick_spacing": 60}
    assert classify_payload_shape(payload) is EventKind.POOL_CREATED


def test_mint_shape_requires_sender():
    payload = {"sender": "s", "owner": "o", "amount": "10", "tick_lower": -60, "tick_upper": 60}
    assert classify_payload_shape(payload) is EventKind.MINT


def test_burn_shape_is_owner_and_amount_without_sender():
    payload = {"owner": "o", "amount": "10", "tick_lower": -60, "tick_upper": 60}
    assert classify_payload_shape(payload) is EventKind.BURN


def test_collect_shape():
    payload = {"owner": "o", "recipient": "r", "amount0": "1", "amount1": "2"}
    assert classify_payload_shape(payload) is EventKind.COLLECT


def test_transfer_shape_accepts_null_from():
    assert classify_payload_shape({"from": None, "to": "b", "amount": "5"}) is EventKind.TRANSFER
    assert classify_payload_shape({"from": "a", "to": "b", "amount": "5"}) is EventKind.TRANSFER


def test_approval_shape():
    payload = {"owner": "o", "spender": "s", "amount": "100"}
    assert classify_payload_shape(payload) is EventKind.APPROVAL


def test_unknown_shape():
    assert classify_payload_shape({"foo": 1}) is EventKind.UNKNOWN
    assert classify(_envelope(None, {})) is EventKind.UNKNOWN


def test_priority_pool_created_beats_initialize():
    payload = {"token0": "a", "token1": "b", "sqrt_price_x96": "1"}
    assert classify_payload_shape(payload) is EventKind.POOL_CREATED
