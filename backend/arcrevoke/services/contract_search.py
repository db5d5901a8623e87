"""Contract search - look up an arbitrary address and describe it as an ERC-20."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from decimal import Decimal
from typing import TypeVar

from arcrevoke.services.chain import ChainReader

logger = logging.getLogger(__name__)

ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")

UNKNOWN_NAME = "Unknown Contract"
UNKNOWN_SYMBOL = "???"
FALLBACK_DECIMALS = 18

T = TypeVar("T")


class ContractSearchError(Exception):
    """Base class for contract search failures."""


class InvalidAddress(ContractSearchError):
    pass


class ContractNotFound(ContractSearchError):
    pass


@dataclass(frozen=True)
class ContractSearchResult:
    address: str
    name: str
    symbol: str
    decimals: int
    total_supply: int

    @property
    def formatted_total_supply(self) -> Decimal:
        return Decimal(self.total_supply).scaleb(-self.decimals)


class ContractSearch:
    def __init__(self, chain: ChainReader):
        self.chain = chain

    async def search(self, address: str) -> ContractSearchResult:
        address = address.strip()
        if not ADDRESS_RE.match(address):
            raise InvalidAddress("Please enter a valid contract address")

        try:
            code = await self.chain.get_code(address)
        except Exception as e:
            raise ContractSearchError(f"Failed to search contract: {e}") from e
        if not code or code.strip(b"\x00") == b"":
            raise ContractNotFound("No contract found at this address")

        # Non-token contracts simply fail these reads
        name, symbol, decimals, total_supply = await asyncio.gather(
            self._read(self.chain.name, address, UNKNOWN_NAME),
            self._read(self.chain.symbol, address, UNKNOWN_SYMBOL),
            self._read(self.chain.decimals, address, FALLBACK_DECIMALS),
            self._read(self.chain.total_supply, address, 0),
        )
        return ContractSearchResult(
            address=address,
            name=name,
            symbol=symbol,
            decimals=decimals,
            total_supply=total_supply,
        )

    @staticmethod
    async def _read(call: Callable[[str], Awaitable[T]], address: str, fallback: T) -> T:
        try:
            return await call(address)
        except Exception as e:
            logger.debug(f"{getattr(call, '__name__', 'read')}() failed for {address}: {e}")
            return fallback
