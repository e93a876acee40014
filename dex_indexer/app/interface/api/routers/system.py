from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from dex_indexer.app.config import Settings
from dex_indexer.app.domain.ports.out import DexEventStore
from dex_indexer.app.interface.api.deps import get_app_settings, get_event_store
from dex_indexer.app.interface.api.schemas import (
    ContractInfoResponse,
    DataResponse,
    SystemContractsResponse,
    SystemHealthResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/system", tags=["system"])


@router.get("/contracts", response_model=DataResponse[SystemContractsResponse])
async def contracts(
    settings: Settings = Depends(get_app_settings),
    store: DexEventStore = Depends(get_event_store),
):
    tokens = sorted({*await store.unique_tokens(), *settings.initial_tokens})
    return DataResponse[SystemContractsResponse](
        data=SystemContractsResponse(
            dex=ContractInfoResponse(
                package_hash=settings.dex_contract_package_hash, name="UnifiedDEX", type="core"
            ),
            router=ContractInfoResponse(
                package_hash=settings.router_contract_package_hash, name="Router", type="core"
            ),
            position_manager=ContractInfoResponse(
                package_hash=settings.position_manager_contract_package_hash,
                name="PositionManager",
                type="core",
            ),
            tokens=tokens,
        )
    )


@router.get("/health", response_model=DataResponse[SystemHealthResponse])
async def health(store: DexEventStore = Depends(get_event_store)):
    try:
        await store.ping()
        stats = await store.pool_stats()
    except Exception as exc:
        logger.exception("Health check failed")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "data": {"status": "unhealthy", "database": "disconnected", "error": str(exc)},
            },
        )

    return DataResponse[SystemHealthResponse](
        data=SystemHealthResponse(
            status="healthy",
            database="connected",
            total_pools=stats.total_pools,
            timestamp=datetime.now(timezone.utc),
        )
    )
