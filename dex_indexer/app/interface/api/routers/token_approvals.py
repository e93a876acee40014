from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from dex_indexer.app.application.services.address import normalize_address
from dex_indexer.app.domain.ports.out import DexEventStore
from dex_indexer.app.interface.api.deps import get_event_store
from dex_indexer.app.interface.api.schemas import (
    DataResponse,
    PageResponse,
    TokenApprovalResponse,
    data_response,
    page_response,
)

router = APIRouter(prefix="/api/token-approvals", tags=["token-approvals"])


@router.get("", response_model=PageResponse[TokenApprovalResponse])
async def list_token_approvals(
    token_address: str | None = Query(default=None, alias="tokenAddress"),
    owner: str | None = Query(default=None),
    spender: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    store: DexEventStore = Depends(get_event_store),
):
    page = await store.find_token_approvals(
        token_address=normalize_address(token_address),
        owner=normalize_address(owner),
        spender=normalize_address(spender),
        limit=limit,
        offset=offset,
    )
    return page_response(page, TokenApprovalResponse)


@router.get("/current", response_model=DataResponse[TokenApprovalResponse])
async def current_approval(
    token_address: str = Query(alias="tokenAddress"),
    owner: str = Query(),
    spender: str = Query(),
    store: DexEventStore = Depends(get_event_store),
):
    approval = await store.current_approval(
        token_address=normalize_address(token_address) or token_address,
        owner=normalize_address(owner) or owner,
        spender=normalize_address(spender) or spender,
    )
    if approval is None:
        raise HTTPException(status_code=404, detail="Approval not found")
    return data_response(approval, TokenApprovalResponse)
