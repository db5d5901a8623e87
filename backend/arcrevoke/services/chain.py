"""Read-only access to the chain through the public node RPC."""

from __future__ import annotations

import logging
from typing import Any

from eth_abi import encode
from web3 import AsyncHTTPProvider, AsyncWeb3

from arcrevoke.core import settings

logger = logging.getLogger(__name__)

ERC20_ABI: list[dict[str, Any]] = [
    {
        "name": "approve",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "name": "allowance",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "spender", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "balanceOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "decimals",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
    },
    {
        "name": "name",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
    {
        "name": "symbol",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
    {
        "name": "totalSupply",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]

# keccak256("approve(address,uint256)")[:4]
APPROVE_SELECTOR = bytes.fromhex("095ea7b3")


def to_checksum(address: str) -> str:
    return AsyncWeb3.to_checksum_address(address)


def encode_approve(spender: str, amount: int) -> str:
    """Call data for ``approve(spender, amount)`` as a 0x-prefixed hex string."""
    payload = APPROVE_SELECTOR + encode(["address", "uint256"], [to_checksum(spender), amount])
    return "0x" + payload.hex()


class ChainReader:
    """ERC-20 view calls and receipt polling via ``AsyncWeb3``."""

    def __init__(self, rpc_url: str | None = None, w3: AsyncWeb3 | None = None):
        self.rpc_url = rpc_url or settings.rpc_url
        self.w3 = w3 or AsyncWeb3(
            AsyncHTTPProvider(self.rpc_url, request_kwargs={"timeout": settings.http_timeout})
        )

    def _token(self, token_address: str):
        return self.w3.eth.contract(address=to_checksum(token_address), abi=ERC20_ABI)

    async def allowance(self, token_address: str, owner: str, spender: str) -> int:
        contract = self._token(token_address)
        return int(
            await contract.functions.allowance(to_checksum(owner), to_checksum(spender)).call()
        )

    async def balance_of(self, token_address: str, owner: str) -> int:
        contract = self._token(token_address)
        return int(await contract.functions.balanceOf(to_checksum(owner)).call())

    async def decimals(self, token_address: str) -> int:
        return int(await self._token(token_address).functions.decimals().call())

    async def name(self, token_address: str) -> str:
        return str(await self._token(token_address).functions.name().call())

    async def symbol(self, token_address: str) -> str:
        return str(await self._token(token_address).functions.symbol().call())

    async def total_supply(self, token_address: str) -> int:
        return int(await self._token(token_address).functions.totalSupply().call())

    async def get_code(self, address: str) -> bytes:
        return bytes(await self.w3.eth.get_code(to_checksum(address)))

    async def wait_for_receipt(self, tx_hash: str, timeout: float = 120.0) -> dict[str, Any]:
        """Block until the transaction is mined (one confirmation)."""
        receipt = await self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        return dict(receipt)
