"""HTTP client for the ArcRevoke backend stats API."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable

import httpx

from arcrevoke.core import settings
from arcrevoke.schemas.revoke import (
    RevokeHistoryCreate,
    RevokeHistoryResponse,
    RevokeStatsResponse,
)
from arcrevoke.services.stats import DEFAULT_RECENT_LIMIT

logger = logging.getLogger(__name__)

StatsCallback = Callable[[RevokeStatsResponse], Awaitable[None] | None]


class StatsRecorder:
    """Posts revoke events and reads the running totals.

    Stats are cached until the next successful ``record_revoke``.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = (base_url or settings.backend_url).rstrip("/")
        self.timeout = timeout or settings.http_timeout
        self._client = client
        self._stats: RevokeStatsResponse | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    def invalidate(self) -> None:
        self._stats = None

    async def record_revoke(self, entry: RevokeHistoryCreate) -> RevokeHistoryResponse:
        response = await self._get_client().post(
            f"{self.base_url}/api/revoke",
            json=entry.model_dump(mode="json", by_alias=True),
        )
        response.raise_for_status()
        self.invalidate()
        return RevokeHistoryResponse.model_validate(response.json())

    async def get_stats(self, refresh: bool = False) -> RevokeStatsResponse:
        if self._stats is None or refresh:
            response = await self._get_client().get(f"{self.base_url}/api/stats")
            response.raise_for_status()
            self._stats = RevokeStatsResponse.model_validate(response.json())
        return self._stats

    async def get_recent_revokes(
        self, limit: int = DEFAULT_RECENT_LIMIT
    ) -> list[RevokeHistoryResponse]:
        response = await self._get_client().get(
            f"{self.base_url}/api/revokes/recent", params={"limit": limit}
        )
        response.raise_for_status()
        return [RevokeHistoryResponse.model_validate(row) for row in response.json()]

    async def poll_stats(self, callback: StatsCallback, interval: float | None = None) -> None:
        """Re-fetch the totals every ``interval`` seconds until cancelled."""
        interval = interval or settings.stats_refresh_interval
        while True:
            try:
                stats = await self.get_stats(refresh=True)
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"Stats refresh failed: {e}")
            else:
                result = callback(stats)
                if inspect.isawaitable(result):
                    await result
            await asyncio.sleep(interval)
