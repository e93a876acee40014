from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import urlencode

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosedError, InvalidHandshake

from dex_indexer.app.domain.exceptions import StreamTransportError
from dex_indexer.app.domain.models import MonitoredContract

logger = logging.getLogger(__name__)


class WebSocketStreamConnection:
    """Adapts a websockets client connection to the StreamConnection port."""

    def __init__(self, ws: ClientConnection, *, contract: MonitoredContract) -> None:
        self._ws = ws
        self._contract = contract

    async def frames(self) -> AsyncIterator[str]:
        # iteration ends quietly on a normal close (ConnectionClosedOK)
        try:
            async for message in self._ws:
                if isinstance(message, bytes):
                    yield message.decode("utf-8", errors="replace")
                else:
                    yield message
        except ConnectionClosedError as exc:
            raise StreamTransportError(
                f"{self._contract.display_name} stream closed abnormally: {exc}"
            ) from exc

    async def close(self) -> None:
        await self._ws.close()


class WebSocketStreamTransport:
    """
    CSPR.cloud streaming transport: one websocket per contract package.

    URL: {streaming_url}/contract-events?contract_package_hash=<hash>
    Auth: raw access key in the `authorization` header.

    Protocol-level pings are disabled; liveness is tracked from the
    application-level heartbeat frames the server sends.
    """

    def __init__(
        self,
        *,
        streaming_url: str,
        access_key: str,
        open_timeout: float = 10.0,
        max_size: int | None = 10 * 1024 * 1024,
    ) -> None:
        self._streaming_url = streaming_url.rstrip("/")
        self._access_key = access_key
        self._open_timeout = open_timeout
        self._max_size = max_size

    def url_for(self, contract: MonitoredContract) -> str:
        query = urlencode({"contract_package_hash": contract.address})
        return f"{self._streaming_url}/contract-events?{query}"

    @asynccontextmanager
    async def connect(self, contract: MonitoredContract) -> AsyncIterator[WebSocketStreamConnection]:
        url = self.url_for(contract)
        logger.debug("Opening websocket %s", url, extra={"contract": contract.display_name})

        try:
            ws = await connect(
                url,
                additional_headers={"authorization": self._access_key},
                ping_interval=None,
                open_timeout=self._open_timeout,
                max_size=self._max_size,
            )
        except (InvalidHandshake, OSError, TimeoutError) as exc:
            raise StreamTransportError(f"Cannot connect to {contract.display_name}: {exc}") from exc

        try:
            yield WebSocketStreamConnection(ws, contract=contract)
        finally:
            await ws.close()
