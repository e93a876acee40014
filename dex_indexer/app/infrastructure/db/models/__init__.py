from dex_indexer.app.infrastructure.db.models.collect_events import CollectEventsDB
from dex_indexer.app.infrastructure.db.models.liquidity_events import LiquidityEventsDB
from dex_indexer.app.infrastructure.db.models.pools import PoolsDB
from dex_indexer.app.infrastructure.db.models.positions import PositionsDB
from dex_indexer.app.infrastructure.db.models.token_approvals import TokenApprovalsDB
from dex_indexer.app.infrastructure.db.models.token_transfers import TokenTransfersDB

__all__ = [
    "CollectEventsDB",
    "LiquidityEventsDB",
    "PoolsDB",
    "PositionsDB",
    "TokenApprovalsDB",
    "TokenTransfersDB",
]
