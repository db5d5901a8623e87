"""Revoker - zeroes allowances by sending ``approve(spender, 0)`` through the wallet."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING

from arcrevoke.schemas.revoke import RevokeHistoryCreate
from arcrevoke.services.approval_scanner import approval_id
from arcrevoke.services.chain import ChainReader, encode_approve, to_checksum
from arcrevoke.services.wallet import UserRejected, WalletConnector

if TYPE_CHECKING:
    from arcrevoke.services.stats_recorder import StatsRecorder

logger = logging.getLogger(__name__)

DEFAULT_RECEIPT_TIMEOUT = 120.0


class RevokeState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    FAILED = "failed"


_IN_FLIGHT = (RevokeState.SUBMITTING, RevokeState.AWAITING_CONFIRMATION)


class TransactionReverted(Exception):
    """The revoke transaction was mined with status 0."""


@dataclass(frozen=True)
class RevokeTarget:
    token_address: str
    spender_address: str
    token_symbol: str = ""
    value_secured: Decimal = Decimal("0")

    @property
    def key(self) -> str:
        return approval_id(self.token_address, self.spender_address)


@dataclass
class RevokeResult:
    target: RevokeTarget
    state: RevokeState
    tx_hash: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.state is RevokeState.CONFIRMED


@dataclass
class BatchRevokeReport:
    results: list[RevokeResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.state is RevokeState.CONFIRMED)

    @property
    def rejected(self) -> int:
        return sum(1 for r in self.results if r.state is RevokeState.REJECTED)

    @property
    def failed(self) -> int:
        return len(self.results) - self.succeeded


class Revoker:
    """Submits revoke transactions and tracks each (token, spender) item's state.

    ``rejected`` and ``failed`` drop an item back to ``idle`` so it can be
    retried; ``confirmed`` sticks until ``forget()`` is called.
    """

    def __init__(
        self,
        wallet: WalletConnector,
        chain: ChainReader,
        recorder: StatsRecorder | None = None,
        receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT,
    ):
        self.wallet = wallet
        self.chain = chain
        self.recorder = recorder
        self.receipt_timeout = receipt_timeout
        self._states: dict[str, RevokeState] = {}

    def state_of(self, key: str) -> RevokeState:
        return self._states.get(key, RevokeState.IDLE)

    def forget(self, key: str) -> None:
        self._states.pop(key, None)

    async def revoke_single(
        self,
        token_address: str,
        spender_address: str,
        token_symbol: str = "",
        value_secured: Decimal = Decimal("0"),
    ) -> RevokeResult:
        return await self.revoke(
            RevokeTarget(token_address, spender_address, token_symbol, Decimal(value_secured))
        )

    async def revoke(self, target: RevokeTarget) -> RevokeResult:
        key = target.key
        state = self.state_of(key)
        if state in _IN_FLIGHT:
            return RevokeResult(target, RevokeState.FAILED, error="Revoke already in progress")
        if state is RevokeState.CONFIRMED:
            return RevokeResult(target, RevokeState.FAILED, error="Already revoked")

        self._states[key] = RevokeState.SUBMITTING
        tx_hash: str | None = None
        try:
            await self.wallet.ensure_network()
            tx_hash = await self.wallet.send_transaction(
                {
                    "to": to_checksum(target.token_address),
                    "data": encode_approve(target.spender_address, 0),
                }
            )
            self._states[key] = RevokeState.AWAITING_CONFIRMATION
            logger.info(f"Revoke submitted for {key}: {tx_hash}")

            receipt = await self.chain.wait_for_receipt(tx_hash, timeout=self.receipt_timeout)
            if receipt.get("status") == 0:
                raise TransactionReverted(f"Transaction {tx_hash} reverted")
        except UserRejected:
            logger.info(f"Revoke of {key} rejected in wallet")
            self._states[key] = RevokeState.IDLE
            return RevokeResult(
                target, RevokeState.REJECTED, tx_hash, "Transaction rejected by user"
            )
        except Exception as e:
            logger.warning(f"Revoke of {key} failed: {e}")
            self._states[key] = RevokeState.IDLE
            return RevokeResult(target, RevokeState.FAILED, tx_hash, str(e) or type(e).__name__)

        self._states[key] = RevokeState.CONFIRMED
        logger.info(f"Revoke of {key} confirmed in {tx_hash}")
        await self._record(target, tx_hash)
        return RevokeResult(target, RevokeState.CONFIRMED, tx_hash)

    async def revoke_batch(self, targets: list[RevokeTarget]) -> BatchRevokeReport:
        """Revoke each target in turn.

        Strictly sequential: every transaction is signed from the same account
        and consumes the next nonce. A pair listed twice is revoked once.
        """
        report = BatchRevokeReport()
        seen: set[str] = set()
        for target in targets:
            if target.key in seen:
                continue
            seen.add(target.key)
            report.results.append(await self.revoke(target))
        logger.info(
            f"Batch revoke finished: {report.succeeded} confirmed, {report.failed} not confirmed"
        )
        return report

    async def _record(self, target: RevokeTarget, tx_hash: str) -> None:
        if self.recorder is None:
            return
        try:
            await self.recorder.record_revoke(
                RevokeHistoryCreate(
                    wallet_address=self.wallet.account or "",
                    token_address=target.token_address,
                    token_symbol=target.token_symbol or "???",
                    spender_address=target.spender_address,
                    value_secured=target.value_secured,
                    tx_hash=tx_hash,
                )
            )
        except Exception as e:
            # The transaction is final on chain regardless of bookkeeping
            logger.warning(f"Could not record revoke {tx_hash}: {e}")
