"""Wallet connector - account access, network switching and signing.

The wallet is reached through an EIP-1193 shaped provider: a single
``request(method, params)`` coroutine plus ``accountsChanged`` and
``chainChanged`` events. ``JsonRpcWalletProvider`` speaks that protocol to a
wallet exposing a local JSON-RPC endpoint.
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from arcrevoke.core import settings
from arcrevoke.core.network import NetworkConfig, get_network

logger = logging.getLogger(__name__)

# EIP-1193 / EIP-3085 error codes
USER_REJECTED_CODE = 4001
UNRECOGNIZED_CHAIN_CODE = 4902

ACCOUNTS_CHANGED = "accountsChanged"
CHAIN_CHANGED = "chainChanged"

Handler = Callable[[Any], Awaitable[None] | None]


class WalletError(Exception):
    """Base class for wallet failures."""


class WalletNotFound(WalletError):
    """No wallet provider is available."""


class UserRejected(WalletError):
    """The human declined the request in their wallet."""


class WalletRpcError(WalletError):
    """The wallet answered a request with a JSON-RPC error object."""

    def __init__(self, code: int | None, message: str, data: Any = None):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"Wallet error {code}: {message}")


class WalletProvider:
    """Base provider: event fan-out plus an abstract ``request``."""

    def __init__(self):
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    async def request(self, method: str, params: list[Any] | None = None) -> Any:
        raise NotImplementedError

    def on(self, event: str, handler: Handler) -> None:
        self._handlers[event].append(handler)

    async def emit(self, event: str, payload: Any) -> None:
        for handler in list(self._handlers[event]):
            result = handler(payload)
            if inspect.isawaitable(result):
                await result


class JsonRpcWalletProvider(WalletProvider):
    """Provider backed by a wallet's HTTP JSON-RPC endpoint.

    Such endpoints cannot push events, so ``watch()`` polls ``eth_accounts``
    and ``eth_chainId`` and emits the standard events when they change.
    """

    def __init__(
        self,
        url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        super().__init__()
        self.url = url or settings.wallet_rpc_url
        self.timeout = timeout or settings.http_timeout
        self._client = client
        self._ids = itertools.count(1)
        self._last_accounts: list[str] | None = None
        self._last_chain_id: str | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def request(self, method: str, params: list[Any] | None = None) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        response = await self._get_client().post(self.url, json=payload)
        response.raise_for_status()
        data = response.json()

        error = data.get("error")
        if error:
            raise WalletRpcError(error.get("code"), error.get("message", ""), error.get("data"))
        return data.get("result")

    async def poll_once(self) -> None:
        accounts = list(await self.request("eth_accounts") or [])
        chain_id = await self.request("eth_chainId")

        if self._last_accounts is not None and accounts != self._last_accounts:
            await self.emit(ACCOUNTS_CHANGED, accounts)
        if self._last_chain_id is not None and chain_id != self._last_chain_id:
            await self.emit(CHAIN_CHANGED, chain_id)

        self._last_accounts = accounts
        self._last_chain_id = chain_id

    async def watch(self, interval: float = 2.0) -> None:
        """Poll for account and chain changes until cancelled."""
        while True:
            try:
                await self.poll_once()
            except (httpx.HTTPError, WalletError) as e:
                logger.warning(f"Wallet poll failed: {e}")
            await asyncio.sleep(interval)


class WalletConnector:
    """Tracks the connected account and whether the wallet is on the target chain."""

    def __init__(
        self,
        provider: WalletProvider | None,
        network: NetworkConfig | None = None,
    ):
        self.provider = provider
        self.network = network or get_network()
        self.account: str | None = None
        self.wrong_network = False
        self._account_listeners: list[Handler] = []

        if provider is not None:
            provider.on(ACCOUNTS_CHANGED, self._on_accounts_changed)
            provider.on(CHAIN_CHANGED, self._on_chain_changed)

    @property
    def connected(self) -> bool:
        return self.account is not None

    def add_account_listener(self, listener: Handler) -> None:
        """Call ``listener(account_or_None)`` whenever the active account changes."""
        self._account_listeners.append(listener)

    def _require_provider(self) -> WalletProvider:
        if self.provider is None:
            raise WalletNotFound(
                "No wallet found. Install or start a wallet such as MetaMask or Rabby."
            )
        return self.provider

    async def _request(self, method: str, params: list[Any] | None = None) -> Any:
        try:
            return await self._require_provider().request(method, params)
        except WalletRpcError as e:
            if e.code == USER_REJECTED_CODE:
                raise UserRejected(e.message or "User rejected the request") from e
            raise

    async def _set_account(self, account: str | None) -> None:
        if account == self.account:
            return
        self.account = account
        for listener in list(self._account_listeners):
            result = listener(account)
            if inspect.isawaitable(result):
                await result

    async def check_connection(self) -> str | None:
        """Pick up an already-authorised account without prompting the user."""
        if self.provider is None:
            return None
        accounts = await self._request("eth_accounts") or []
        if accounts:
            await self._set_account(accounts[0])
            await self.refresh_network()
        return self.account

    async def connect(self) -> str:
        """Request account access, then move the wallet onto the target chain."""
        accounts = await self._request("eth_requestAccounts") or []
        if not accounts:
            raise WalletError("Wallet returned no accounts")
        await self._set_account(accounts[0])

        try:
            await self.switch_network()
        except WalletError as e:
            logger.warning(f"Could not switch wallet to {self.network.name}: {e}")
        await self.refresh_network()

        logger.info(f"Connected {self.account} (wrong_network={self.wrong_network})")
        return self.account

    async def refresh_network(self) -> bool:
        """Re-read the wallet chain id. Returns True when it is the target chain."""
        chain_id = await self._request("eth_chainId")
        self.wrong_network = not self.network.matches(chain_id)
        return not self.wrong_network

    async def switch_network(self) -> None:
        """Switch to the target chain, adding it to the wallet first if unknown."""
        try:
            await self._request(
                "wallet_switchEthereumChain", [{"chainId": self.network.hex_chain_id}]
            )
        except WalletRpcError as e:
            if e.code != UNRECOGNIZED_CHAIN_CODE:
                raise
            await self._request("wallet_addEthereumChain", [self.network.add_chain_params()])
        self.wrong_network = False

    async def ensure_network(self) -> None:
        await self.switch_network()

    async def send_transaction(self, tx: dict[str, Any]) -> str:
        """Ask the wallet to sign and broadcast ``tx``; returns the transaction hash."""
        if self.account is None:
            raise WalletError("Wallet not connected")
        return await self._request("eth_sendTransaction", [{"from": self.account, **tx}])

    async def _on_accounts_changed(self, accounts: list[str]) -> None:
        await self._set_account(accounts[0] if accounts else None)

    def _on_chain_changed(self, chain_id: str) -> None:
        self.wrong_network = not self.network.matches(chain_id)
