from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class CsprCloudEventsFetcher:
    """
    HistoricalEventsFetcher backed by the CSPR.cloud REST API.

    GET {base_url}/contract-packages/{hash}/events?page=N&limit=L
    Response body: {"data": [...], "page_count": int, "item_count": int}
    """

    def __init__(
        self,
        *,
        base_url: str,
        access_key: str,
        timeout_seconds: float = 30.0,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._access_key = access_key
        self._timeout_seconds = timeout_seconds
        self._max_retries = max_retries
        self._transport = transport

    async def fetch_page(
        self,
        *,
        contract_package_hash: str,
        page: int,
        limit: int,
    ) -> tuple[list[dict[str, Any]], int | None]:
        url = f"{self._base_url}/contract-packages/{contract_package_hash}/events"
        payload = await self._get_json(url, params={"page": page, "limit": limit})

        items = payload.get("data") or []
        if not isinstance(items, list):
            raise ValueError(f"Unexpected events payload for {contract_package_hash}: {type(items).__name__}")

        page_count = payload.get("page_count")
        return [i for i in items if isinstance(i, dict)], page_count if isinstance(page_count, int) else None

    async def _get_json(self, url: str, *, params: dict[str, Any]) -> dict[str, Any]:
        attempts = max(1, self._max_retries)
        delay = 0.5
        last_exc: Exception | None = None

        for attempt in range(1, attempts + 1):
            try:
                async with httpx.AsyncClient(
                    timeout=self._timeout_seconds,
                    headers={"authorization": self._access_key},
                    transport=self._transport,
                ) as client:
                    response = await client.get(url, params=params)
                    response.raise_for_status()
                    body = response.json()

                if not isinstance(body, dict):
                    raise ValueError("events endpoint did not return a JSON object")
                return body
            except (httpx.HTTPError, ValueError) as exc:
                last_exc = exc
                if attempt == attempts:
                    break
                logger.warning(
                    "cspr_cloud_events_fetcher: retry attempt=%s/%s error=%s",
                    attempt,
                    attempts,
                    exc,
                    extra={"url": url, "page": params.get("page")},
                )
                await asyncio.sleep(delay)
                delay *= 2

        raise RuntimeError(f"Historical events request failed after retries: {last_exc}") from last_exc
