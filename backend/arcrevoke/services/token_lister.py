"""Token lister - ERC-20 tokens a wallet has touched, with live balances."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from arcrevoke.services.chain import ChainReader
from arcrevoke.services.explorer import BlockExplorerClient
from arcrevoke.services.outcome import Outcome

logger = logging.getLogger(__name__)

DEFAULT_DECIMALS = 18


@dataclass
class Token:
    """A token contract as listed by the explorer, enriched from the chain."""

    contract_address: str
    name: str
    symbol: str
    balance: int | None = None
    decimals: int | None = None

    @classmethod
    def from_explorer(cls, entry: dict[str, Any]) -> Token | None:
        address = entry.get("contractAddress")
        if not address:
            return None
        # Blockscout also lists NFTs; keep fungible tokens only
        token_type = entry.get("type")
        if token_type and token_type != "ERC-20":
            return None
        return cls(
            contract_address=address,
            name=entry.get("name") or "Unknown",
            symbol=entry.get("symbol") or "???",
        )

    @property
    def effective_decimals(self) -> int:
        return DEFAULT_DECIMALS if self.decimals is None else self.decimals

    @property
    def human_balance(self) -> Decimal:
        return Decimal(self.balance or 0).scaleb(-self.effective_decimals)


class TokenLister:
    """Fetches the token list for an address and reads balance/decimals per token."""

    def __init__(self, explorer: BlockExplorerClient, chain: ChainReader):
        self.explorer = explorer
        self.chain = chain

    async def list_tokens(self, address: str) -> Outcome[Token]:
        listing = await self.explorer.token_list(address)
        if not listing.ok:
            return Outcome.failed(listing.reason or "token list unavailable")

        tokens: list[Token] = []
        for entry in listing.items:
            token = Token.from_explorer(entry)
            if token is None:
                continue
            await self._enrich(token, address)
            tokens.append(token)

        logger.debug(f"Listed {len(tokens)} tokens for {address}")
        return Outcome.of(tokens)

    async def _enrich(self, token: Token, owner: str) -> None:
        try:
            token.decimals = await self.chain.decimals(token.contract_address)
        except Exception as e:
            logger.debug(f"decimals() failed for {token.contract_address}: {e}")
            token.decimals = DEFAULT_DECIMALS

        try:
            token.balance = await self.chain.balance_of(token.contract_address, owner)
        except Exception as e:
            logger.debug(f"balanceOf() failed for {token.contract_address}: {e}")
            token.balance = 0
