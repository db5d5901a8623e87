"""Block explorer client - Etherscan-style ``?module=...&action=...`` API.

Arc Testnet runs a Blockscout explorer, which answers the Etherscan-compatible
RPC API at ``/api``. Every query here is read-only and best effort: failures
come back as a failed ``Outcome`` instead of an exception.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from arcrevoke.core import settings
from arcrevoke.services.outcome import Outcome

logger = logging.getLogger(__name__)

# keccak256("Approval(address,address,uint256)")
APPROVAL_TOPIC = "0x8c5be1e5ebec7d5bd14f71427d1e84f3dd0314c0f7b2291e5b200ac8c7c3b925"


class ExplorerError(Exception):
    """The explorer answered, but not with a usable result."""


def pad_topic(address: str) -> str:
    """Left-pad a 20-byte address to a 32-byte log topic."""
    return "0x" + address.lower().removeprefix("0x").rjust(64, "0")


def topic_to_address(topic: str) -> str:
    """Take the low 20 bytes of a 32-byte topic as a lower-case address."""
    return "0x" + topic.lower().removeprefix("0x")[-40:]


class BlockExplorerClient:
    """Async client for the explorer API.

    The underlying ``httpx.AsyncClient`` is created lazily and can be injected
    (tests pass one backed by ``httpx.MockTransport``).
    """

    def __init__(
        self,
        api_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_url = api_url or settings.explorer_api_url
        self.timeout = timeout or settings.http_timeout
        self._client = client
        self._client_lock = asyncio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None or self._client.is_closed:
                self._client = httpx.AsyncClient(timeout=self.timeout)
            return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def _query(self, params: dict[str, str]) -> list[dict[str, Any]]:
        client = await self._get_client()
        response = await client.get(self.api_url, params=params)
        response.raise_for_status()
        data = response.json()

        if not isinstance(data, dict):
            raise ExplorerError(f"Unexpected explorer payload: {type(data).__name__}")
        result = data.get("result")
        if isinstance(result, list):
            return result
        # Errors arrive as status "0" with a message and a null or string result
        raise ExplorerError(data.get("message") or str(result))

    async def _best_effort(self, what: str, params: dict[str, str]) -> Outcome[dict[str, Any]]:
        try:
            return Outcome.of(await self._query(params))
        except (httpx.HTTPError, ValueError, ExplorerError) as e:
            logger.warning(f"Explorer {what} query failed: {e}")
            return Outcome.failed(str(e) or type(e).__name__)

    async def token_list(self, address: str) -> Outcome[dict[str, Any]]:
        """Tokens ever held by ``address``, in explorer order."""
        return await self._best_effort(
            "tokenlist",
            {"module": "account", "action": "tokenlist", "address": address},
        )

    async def approval_logs(self, token_address: str, owner: str) -> Outcome[dict[str, Any]]:
        """Every historical ``Approval`` log emitted by ``token_address`` for ``owner``."""
        return await self._best_effort(
            "getLogs",
            {
                "module": "logs",
                "action": "getLogs",
                "fromBlock": "0",
                "toBlock": "latest",
                "address": token_address,
                "topic0": APPROVAL_TOPIC,
                "topic1": pad_topic(owner),
                "topic0_1_opr": "and",
            },
        )
