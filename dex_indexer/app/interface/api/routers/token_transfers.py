from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from dex_indexer.app.application.services.address import normalize_address
from dex_indexer.app.domain.ports.out import DexEventStore
from dex_indexer.app.interface.api.deps import get_event_store
from dex_indexer.app.interface.api.schemas import (
    DataResponse,
    PageResponse,
    TokenTransferResponse,
    TokenVolumeResponse,
    data_response,
    page_response,
)

router = APIRouter(prefix="/api/token-transfers", tags=["token-transfers"])


@router.get("", response_model=PageResponse[TokenTransferResponse])
async def list_token_transfers(
    token_address: str | None = Query(default=None, alias="tokenAddress"),
    address: str | None = Query(default=None),
    mints_only: bool = Query(default=False, alias="mintsOnly"),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    store: DexEventStore = Depends(get_event_store),
):
    page = await store.find_token_transfers(
        token_address=normalize_address(token_address),
        address=normalize_address(address),
        mints_only=mints_only,
        limit=limit,
        offset=offset,
    )
    return page_response(page, TokenTransferResponse)


@router.get("/token/{token_address}", response_model=PageResponse[TokenTransferResponse])
async def transfers_by_token(
    token_address: str,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    store: DexEventStore = Depends(get_event_store),
):
    page = await store.find_token_transfers(
        token_address=normalize_address(token_address), limit=limit, offset=offset
    )
    return page_response(page, TokenTransferResponse)


@router.get("/token/{token_address}/volume", response_model=DataResponse[TokenVolumeResponse])
async def token_volume(
    token_address: str,
    hours: int = Query(default=24, ge=1, le=24 * 365),
    store: DexEventStore = Depends(get_event_store),
):
    volume = await store.token_volume(token_address=normalize_address(token_address) or token_address, hours=hours)
    return data_response(volume, TokenVolumeResponse)


@router.get("/account/{account}", response_model=PageResponse[TokenTransferResponse])
async def transfers_by_account(
    account: str,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    store: DexEventStore = Depends(get_event_store),
):
    page = await store.find_token_transfers(address=normalize_address(account), limit=limit, offset=offset)
    return page_response(page, TokenTransferResponse)
