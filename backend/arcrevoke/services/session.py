"""RevokeSession - the per-user working state between wallet, scanner and revoker.

Tokens and detected approvals are ephemeral: they are rebuilt wholesale on
each refresh and discarded when the account changes. Nothing here persists.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from decimal import Decimal

from arcrevoke.core import settings
from arcrevoke.services.approval_scanner import ApprovalScanner, DetectedApproval, ScanResult
from arcrevoke.services.chain import ChainReader
from arcrevoke.services.outcome import OutcomeStatus
from arcrevoke.services.revoker import BatchRevokeReport, RevokeResult, Revoker, RevokeTarget
from arcrevoke.services.token_lister import Token, TokenLister
from arcrevoke.services.wallet import WalletConnector, WalletError

logger = logging.getLogger(__name__)


class RevokeSession:
    def __init__(
        self,
        wallet: WalletConnector,
        lister: TokenLister,
        scanner: ApprovalScanner,
        revoker: Revoker,
        chain: ChainReader,
    ):
        self.wallet = wallet
        self.lister = lister
        self.scanner = scanner
        self.revoker = revoker
        self.chain = chain

        self.tokens: list[Token] = []
        self.token_status: OutcomeStatus | None = None
        self.detected: dict[str, DetectedApproval] = {}
        self.last_scan: ScanResult | None = None

        # Bumped on every account change; results from an older generation are dropped
        self._generation = 0
        self._wake = asyncio.Event()
        wallet.add_account_listener(self._on_account_changed)

    @property
    def account(self) -> str | None:
        return self.wallet.account

    @property
    def approvals(self) -> list[DetectedApproval]:
        return list(self.detected.values())

    def _clear(self) -> None:
        self.tokens = []
        self.token_status = None
        self.detected = {}
        self.last_scan = None

    def _on_account_changed(self, account: str | None) -> None:
        self._generation += 1
        self._clear()
        logger.info(f"Account changed to {account}; session state reset")
        self._wake.set()

    async def refresh(self) -> bool:
        """List tokens and rescan approvals for the current account.

        Returns False when there is no account or the account changed while
        the refresh was running.
        """
        account = self.wallet.account
        if account is None:
            self._clear()
            return False
        generation = self._generation

        listing = await self.lister.list_tokens(account)
        if generation != self._generation:
            logger.debug("Discarding token list for a stale account")
            return False

        scan = await self.scanner.scan(account, listing.items)
        if generation != self._generation:
            logger.debug("Discarding scan for a stale account")
            return False

        self.tokens = listing.items
        self.token_status = listing.status
        self.detected = {approval.id: approval for approval in scan.approvals}
        self.last_scan = scan
        return True

    async def run_refresh_loop(
        self,
        interval: float | None = None,
        on_refresh: Callable[[RevokeSession], None] | None = None,
    ) -> None:
        """Refresh periodically while connected, and immediately on account change.

        ``on_refresh`` is called with the session after each refresh that
        completed for the current account.
        """
        interval = interval or settings.token_refresh_interval
        while True:
            self._wake.clear()
            if self.wallet.account is not None:
                try:
                    if await self.refresh() and on_refresh is not None:
                        on_refresh(self)
                except WalletError as e:
                    logger.warning(f"Refresh failed: {e}")
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

    def _value_secured(self, approval: DetectedApproval) -> Decimal:
        if approval.value_at_risk is not None:
            return approval.value_at_risk
        # An unlimited approval exposed at most the wallet's current balance
        token = self._token(approval.token_address)
        if token is None:
            return Decimal("0")
        value = self.scanner.prices.estimate_value(
            token.balance or 0, token.effective_decimals, token.symbol
        )
        return value or Decimal("0")

    def _token(self, token_address: str) -> Token | None:
        for token in self.tokens:
            if token.contract_address.lower() == token_address.lower():
                return token
        return None

    def _target_for(self, approval: DetectedApproval) -> RevokeTarget:
        return RevokeTarget(
            token_address=approval.token_address,
            spender_address=approval.spender_address,
            token_symbol=approval.token_symbol,
            value_secured=self._value_secured(approval),
        )

    def _settle(self, result: RevokeResult) -> None:
        if result.ok:
            self.detected.pop(result.target.key, None)
            self.revoker.forget(result.target.key)

    async def revoke(self, approval_id: str) -> RevokeResult:
        approval = self.detected.get(approval_id)
        if approval is None:
            raise KeyError(f"No detected approval {approval_id}")
        result = await self.revoker.revoke(self._target_for(approval))
        self._settle(result)
        return result

    async def revoke_selected(self, approval_ids: list[str]) -> BatchRevokeReport:
        missing = [i for i in approval_ids if i not in self.detected]
        if missing:
            raise KeyError(f"No detected approval {', '.join(missing)}")
        report = await self.revoker.revoke_batch(
            [self._target_for(self.detected[i]) for i in approval_ids]
        )
        for result in report.results:
            self._settle(result)
        return report

    async def revoke_manual(self, token_address: str, spender_address: str) -> RevokeResult:
        """Revoke a pair the scan may not know about."""
        owner = self.wallet.account
        if owner is not None:
            try:
                current = await self.chain.allowance(token_address, owner, spender_address)
                logger.info(f"Current allowance for {token_address} / {spender_address}: {current}")
            except Exception as e:
                logger.info(f"Could not read current allowance, revoking anyway: {e}")

        token = self._token(token_address)
        result = await self.revoker.revoke(
            RevokeTarget(
                token_address=token_address,
                spender_address=spender_address,
                token_symbol=token.symbol if token else "",
            )
        )
        self._settle(result)
        return result

    async def revoke_tokens_for_spender(
        self, token_addresses: list[str], spender_address: str
    ) -> BatchRevokeReport:
        """Revoke one spender across several tokens."""
        targets = []
        for address in token_addresses:
            token = self._token(address)
            targets.append(
                RevokeTarget(
                    token_address=address,
                    spender_address=spender_address,
                    token_symbol=token.symbol if token else "",
                )
            )
        report = await self.revoker.revoke_batch(targets)
        for result in report.results:
            self._settle(result)
        return report
