from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from dex_indexer.app.domain.exceptions import PoolNotFoundError
from dex_indexer.app.interface.api.deps import get_engine
from dex_indexer.app.interface.api.routers import (
    analytics,
    collect_events,
    liquidity_events,
    pools,
    positions,
    system,
    token_approvals,
    token_transfers,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    yield
    if get_engine.cache_info().currsize:
        await get_engine().dispose()


def create_app() -> FastAPI:
    app = FastAPI(title="DEX Indexer API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for module in (
        pools,
        liquidity_events,
        collect_events,
        token_transfers,
        token_approvals,
        positions,
        analytics,
        system,
    ):
        app.include_router(module.router)

    @app.exception_handler(PoolNotFoundError)
    async def _pool_not_found(_request: Request, exc: PoolNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"success": False, "error": str(exc) or "Pool not found"})

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"success": False, "error": str(exc.detail)})

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled API error", extra={"path": request.url.path})
        return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
