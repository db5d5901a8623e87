"""Approval scanner - finds live ERC-20 allowances granted by an owner.

Historical ``Approval`` logs only nominate candidate spenders. Whether an
approval is still outstanding is decided by a fresh ``allowance()`` read, so a
scan is a pure function of current chain state and is always rerun from
scratch rather than patched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from arcrevoke.services.chain import ChainReader
from arcrevoke.services.explorer import BlockExplorerClient, topic_to_address
from arcrevoke.services.pricing import PriceTable, format_usd
from arcrevoke.services.token_lister import Token

logger = logging.getLogger(__name__)


def approval_id(token_address: str, spender_address: str) -> str:
    return f"{token_address.lower()}-{spender_address.lower()}"


@dataclass(frozen=True)
class DetectedApproval:
    """A (token, spender) pair with a non-zero allowance right now."""

    id: str
    token_address: str
    token_name: str
    token_symbol: str
    spender_address: str
    allowance: int
    # None means the estimate is unbounded ("Unlimited")
    value_at_risk: Decimal | None

    @property
    def is_unlimited(self) -> bool:
        return self.value_at_risk is None

    @property
    def display_value(self) -> str:
        return "Unlimited" if self.value_at_risk is None else format_usd(self.value_at_risk)


@dataclass
class ScanResult:
    approvals: list[DetectedApproval] = field(default_factory=list)
    # token address -> reason the token could not be (fully) scanned
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.failures


class ApprovalScanner:
    """Cross-references Approval logs with live allowances, token by token.

    Runs one request at a time with no batching or caching; a personal
    wallet's token list is small.
    """

    def __init__(
        self,
        explorer: BlockExplorerClient,
        chain: ChainReader,
        prices: PriceTable | None = None,
    ):
        self.explorer = explorer
        self.chain = chain
        self.prices = prices or PriceTable.from_settings()

    async def scan(self, owner: str, tokens: list[Token]) -> ScanResult:
        result = ScanResult()
        for token in tokens:
            try:
                await self._scan_token(owner, token, result)
            except Exception as e:
                logger.warning(f"Error scanning {token.contract_address}: {e}")
                result.failures[token.contract_address] = str(e)

        logger.info(
            f"Scan of {len(tokens)} tokens for {owner} found "
            f"{len(result.approvals)} active approval(s), {len(result.failures)} failure(s)"
        )
        return result

    async def _scan_token(self, owner: str, token: Token, result: ScanResult) -> None:
        logs = await self.explorer.approval_logs(token.contract_address, owner)
        if not logs.ok:
            result.failures[token.contract_address] = logs.reason or "log query failed"
            return

        spenders = self._candidate_spenders(logs.items)
        for spender in sorted(spenders):
            try:
                allowance = await self.chain.allowance(token.contract_address, owner, spender)
            except Exception as e:
                logger.warning(
                    f"Allowance check failed for {token.contract_address} / {spender}: {e}"
                )
                result.failures.setdefault(token.contract_address, f"allowance check failed: {e}")
                continue

            if allowance <= 0:
                continue

            result.approvals.append(
                DetectedApproval(
                    id=approval_id(token.contract_address, spender),
                    token_address=token.contract_address,
                    token_name=token.name or "Unknown",
                    token_symbol=token.symbol or "???",
                    spender_address=spender,
                    allowance=allowance,
                    value_at_risk=self.prices.estimate_value(
                        allowance, token.effective_decimals, token.symbol
                    ),
                )
            )

    @staticmethod
    def _candidate_spenders(logs: list[dict]) -> set[str]:
        spenders: set[str] = set()
        for log in logs:
            topics = log.get("topics") or []
            # Blockscout pads unused topic slots with null
            if len(topics) > 2 and topics[2]:
                spenders.add(topic_to_address(topics[2]))
        return spenders
