from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import DEX, POSITION_MANAGER, ROUTER, token_contract
from dex_indexer.app.application.services.contract_registry import ContractRegistry
from dex_indexer.app.application.services.event_router import EventRouter
from dex_indexer.app.domain.models import EventEnvelope

SQRT_PRICE_1_1 = "79228162514264337593543950336"


def _envelope(name, data, deploy_hash="deploy-1"):
    return EventEnvelope(name=name, data=data, deploy_hash=deploy_hash)


def _pool_created(token0="hash-T0000000", token1="hash-T1111111", fee=3000, deploy_hash="deploy-pool"):
    return _envelope(
        "PoolCreated",
        {"token0": token0, "token1": token1, "fee": fee, "tick_spacing": 60, "pool": "hash-pool0001"},
        deploy_hash=deploy_hash,
    )


@pytest.fixture
def registry():
    return ContractRegistry()


@pytest.fixture
def router(store, registry):
    return EventRouter(store=store, registry=registry)


# ---------------------------------------------------------------------------
# exchange core
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_pool_created_then_initialize_end_to_end(router, registry, store):
    discovered = []
    registry.subscribe(discovered.append)

    await router.route(_pool_created(), DEX)

    page = await store.find_pools()
    assert page.total == 1
    pool = page.items[0]
    assert (pool.token0, pool.token1, pool.fee) == ("T0000000", "T1111111", 3000)
    assert pool.initialized is False
    assert pool.pool_address == "pool0001"
    assert {m.contract.address for m in discovered} == {"T0000000", "T1111111"}

    # Initialize carries no pool reference: correlated with the uninitialized pool
    await router.route(
        _envelope("Initialize", {"sqrt_price_x96": SQRT_PRICE_1_1, "tick": 0}, deploy_hash="deploy-init"),
        DEX,
    )

    pool = await store.find_pool(pool_id=pool.id)
    assert pool.initialized is True
    assert pool.sqrt_price_x96 == SQRT_PRICE_1_1
    assert pool.tick == 0


@pytest.mark.asyncio
async def test_duplicate_pool_created_yields_one_row(router, registry, store):
    discovered = []
    registry.subscribe(discovered.append)

    await router.route(_pool_created(), DEX)
    await router.route(_pool_created(deploy_hash="deploy-replay"), DEX)

    assert (await store.find_pools()).total == 1
    assert len(discovered) == 2  # token0 + token1, once each


@pytest.mark.asyncio
async def test_initialize_prefers_pool_address(router, store):
    await router.route(_pool_created(token0="A", token1="B", deploy_hash="d1"), DEX)
    await router.route(
        _envelope(
            "PoolCreated",
            {"token0": "C", "token1": "D", "fee": 500, "tick_spacing": 10, "pool": "hash-poolCD"},
            deploy_hash="d2",
        ),
        DEX,
    )

    await router.route(
        _envelope("Initialize", {"sqrt_price_x96": "1", "tick": -5, "pool": "hash-pool0001"}),
        DEX,
    )

    ab = await store.find_pool_by_key(token0="A", token1="B", fee=3000)
    cd = await store.find_pool_by_key(token0="C", token1="D", fee=500)
    assert ab.initialized is True and ab.tick == -5
    assert cd.initialized is False


@pytest.mark.asyncio
async def test_replayed_initialize_does_not_touch_another_pool(router, store):
    await router.route(_pool_created(token0="A", token1="B", deploy_hash="d1"), DEX)
    await router.route(_pool_created(token0="C", token1="D", deploy_hash="d2"), DEX)
    initialize = _envelope("Initialize", {"sqrt_price_x96": SQRT_PRICE_1_1, "tick": 0}, deploy_hash="d-init")

    await router.route(initialize, DEX)
    await router.route(initialize, DEX)

    ab = await store.find_pool_by_key(token0="A", token1="B", fee=3000)
    cd = await store.find_pool_by_key(token0="C", token1="D", fee=3000)
    assert cd.initialized is True
    assert cd.initialize_deploy_hash == "d-init"
    assert ab.initialized is False
    assert ab.sqrt_price_x96 is None


@pytest.mark.asyncio
async def test_pool_address_shared_by_every_pool_is_not_trusted(router, store):
    # both pools report the exchange package hash as `pool`
    await router.route(_pool_created(token0="A", token1="B", deploy_hash="d1"), DEX)
    await router.route(_pool_created(token0="C", token1="D", deploy_hash="d2"), DEX)

    await router.route(
        _envelope("Initialize", {"sqrt_price_x96": "1", "tick": 7, "pool": "hash-pool0001"}, deploy_hash="d1"),
        DEX,
    )

    ab = await store.find_pool_by_key(token0="A", token1="B", fee=3000)
    cd = await store.find_pool_by_key(token0="C", token1="D", fee=3000)
    assert ab.initialized is True and ab.tick == 7
    assert cd.initialized is False


@pytest.mark.asyncio
async def test_mint_and_burn_are_appended_once(router, store):
    await router.route(_pool_created(), DEX)
    mint = _envelope(
        "Mint",
        {
            "sender": "account-hash-s1",
            "owner": "account-hash-o1",
            "tick_lower": -60,
            "tick_upper": 60,
            "amount": "1000",
            "amount0": "100",
            "amount1": "200",
        },
        deploy_hash="deploy-mint",
    )
    burn = _envelope(
        None,
        {"owner": "account-hash-o1", "tick_lower": -60, "tick_upper": 60, "amount": "400", "amount0": "40", "amount1": "80"},
        deploy_hash="deploy-burn",
    )

    await router.route(mint, DEX)
    await router.route(mint, DEX)
    await router.route(burn, DEX)

    events = await store.find_liquidity_events()
    assert events.total == 2
    by_type = {e.event_type: e for e in events.items}
    assert by_type["mint"].owner == "o1"
    assert by_type["mint"].sender == "s1"
    assert by_type["burn"].sender == "o1"


@pytest.mark.asyncio
async def test_collect_is_appended(router, store):
    await router.route(_pool_created(), DEX)

    await router.route(
        _envelope(
            "Collect",
            {"owner": "o1", "recipient": "account-hash-r1", "tick_lower": -60, "tick_upper": 60, "amount0": "5", "amount1": "7"},
        ),
        DEX,
    )

    collects = await store.find_collect_events()
    assert collects.total == 1
    assert collects.items[0].recipient == "r1"


@pytest.mark.asyncio
async def test_liquidity_event_without_any_pool_is_dropped(router, store):
    await router.route(
        _envelope("Mint", {"sender": "s", "owner": "o", "amount": "1", "amount0": "1", "amount1": "1"}),
        DEX,
    )

    assert (await store.find_liquidity_events()).total == 0


# ---------------------------------------------------------------------------
# fungible tokens
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_transfer_with_null_from_is_stored_as_mint(router, store):
    token = token_contract("tok00001")

    await router.route(_envelope("Transfer", {"from": None, "to": "account-hash-U", "amount": "1000"}), token)

    transfers = await store.find_token_transfers(token_address="tok00001")
    assert transfers.total == 1
    transfer = transfers.items[0]
    assert transfer.from_address is None
    assert transfer.to_address == "U"
    assert transfer.amount == "1000"
    assert (await store.find_token_transfers(mints_only=True)).total == 1


@pytest.mark.asyncio
async def test_transfer_with_key_objects_is_normalized(router, store):
    token = token_contract("tok00001")

    await router.route(
        _envelope(
            None,
            {"from": {"Account": "account-hash-aa"}, "to": {"Contract": "hash-bb"}, "amount": "0x10"},
        ),
        token,
    )

    transfer = (await store.find_token_transfers()).items[0]
    assert (transfer.from_address, transfer.to_address, transfer.amount) == ("aa", "bb", "16")


@pytest.mark.asyncio
async def test_approval_is_stored_against_the_emitting_token(router, store):
    token = token_contract("tok00001")

    await router.route(_envelope("Approval", {"owner": "o", "spender": "hash-router00", "amount": "500"}), token)

    approval = await store.current_approval(token_address="tok00001", owner="o", spender="router00")
    assert approval is not None
    assert approval.amount == "500"


@pytest.mark.asyncio
async def test_events_without_deploy_hash_are_dropped(router, store):
    token = token_contract("tok00001")
    transfer = _envelope("Transfer", {"from": None, "to": "U", "amount": "1000"}, deploy_hash=None)

    await router.route(transfer, token)
    await router.route(transfer, token)

    assert (await store.find_token_transfers()).total == 0


@pytest.mark.asyncio
async def test_token_events_on_core_contract_are_ignored(router, store):
    await router.route(_envelope("Transfer", {"from": "a", "to": "b", "amount": "1"}), ROUTER)

    assert (await store.find_token_transfers()).total == 0


# ---------------------------------------------------------------------------
# position manager
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_position_lifecycle(router, store):
    await router.route(_pool_created(), DEX)

    await router.route(
        _envelope(
            "PositionMinted",
            {"token_id": 7, "owner": "account-hash-o1", "tick_lower": -60, "tick_upper": 60, "liquidity": "1000"},
            deploy_hash="pm-1",
        ),
        POSITION_MANAGER,
    )
    await router.route(
        _envelope("IncreaseLiquidity", {"token_id": "7", "liquidity": "500"}, deploy_hash="pm-2"),
        POSITION_MANAGER,
    )
    # replay of the same deploy is ignored
    await router.route(
        _envelope("IncreaseLiquidity", {"token_id": "7", "liquidity": "500"}, deploy_hash="pm-2"),
        POSITION_MANAGER,
    )
    await router.route(
        _envelope("DecreaseLiquidity", {"token_id": "7", "liquidity": "300"}, deploy_hash="pm-3"),
        POSITION_MANAGER,
    )

    position = await store.find_position(token_id="7")
    assert position.owner == "o1"
    assert position.liquidity == "1200"
    assert position.deploy_hash == "pm-3"


# ---------------------------------------------------------------------------
# failure isolation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_persistence_failure_is_logged_and_swallowed(registry, caplog):
    store = MagicMock()
    store.append_token_transfer = AsyncMock(side_effect=RuntimeError("database is down"))
    router = EventRouter(store=store, registry=registry)

    await router.route(_envelope("Transfer", {"from": "a", "to": "b", "amount": "1"}), token_contract("tok00001"))

    store.append_token_transfer.assert_awaited_once()
    assert "Failed to store Transfer event" in caplog.text


@pytest.mark.asyncio
async def test_unknown_event_is_not_persisted(registry):
    store = MagicMock()
    router = EventRouter(store=store, registry=registry)

    await router.route(_envelope("Mystery", {"foo": "bar"}), DEX)

    assert store.mock_calls == []
