"""Tests for RevokeSession."""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

from arcrevoke.core.network import ARC_TESTNET
from arcrevoke.services.approval_scanner import ApprovalScanner, approval_id
from arcrevoke.services.outcome import OutcomeStatus
from arcrevoke.services.pricing import PriceTable
from arcrevoke.services.revoker import Revoker, RevokeState
from arcrevoke.services.session import RevokeSession
from arcrevoke.services.token_lister import TokenLister
from arcrevoke.services.wallet import WalletConnector

pytestmark = pytest.mark.asyncio

USDC = "0x" + "aa" * 20
WETH = "0x" + "bb" * 20
ROUTER = "0x" + "11" * 20
POOL = "0x" + "22" * 20
OTHER_ACCOUNT = "0x" + "cd" * 20


@pytest.fixture
def recorder() -> AsyncMock:
    return AsyncMock()


@pytest_asyncio.fixture
async def session(fake_provider, fake_explorer, fake_chain, recorder, owner) -> RevokeSession:
    fake_explorer.set_tokens(
        [
            {"contractAddress": USDC, "name": "USD Coin", "symbol": "USDC", "type": "ERC-20"},
            {"contractAddress": WETH, "name": "Wrapped Ether", "symbol": "WETH", "type": "ERC-20"},
        ]
    )
    fake_chain.token_decimals[USDC] = 6
    fake_chain.balances[(WETH, owner)] = 2 * 10**18
    fake_explorer.add_approval(USDC, owner, ROUTER)
    fake_explorer.add_approval(WETH, owner, POOL)
    fake_chain.set_allowance(USDC, owner, ROUTER, 50_000_000)
    fake_chain.set_allowance(WETH, owner, POOL, 2**256 - 1)

    wallet = WalletConnector(fake_provider, ARC_TESTNET)
    revoke_session = RevokeSession(
        wallet=wallet,
        lister=TokenLister(fake_explorer, fake_chain),
        scanner=ApprovalScanner(fake_explorer, fake_chain, PriceTable()),
        revoker=Revoker(wallet, fake_chain, recorder),
        chain=fake_chain,
    )
    await wallet.connect()
    return revoke_session


class TestRefresh:
    async def test_refresh_builds_state(self, session):
        assert await session.refresh()

        assert [t.symbol for t in session.tokens] == ["USDC", "WETH"]
        assert session.token_status is OutcomeStatus.OK
        assert set(session.detected) == {approval_id(USDC, ROUTER), approval_id(WETH, POOL)}

    async def test_refresh_replaces_detected_set(self, session, fake_chain, owner):
        await session.refresh()
        fake_chain.set_allowance(USDC, owner, ROUTER, 0)

        await session.refresh()

        assert set(session.detected) == {approval_id(WETH, POOL)}

    async def test_no_account(self, session, fake_provider):
        await fake_provider.emit("accountsChanged", [])

        assert not await session.refresh()
        assert session.detected == {}

    async def test_account_change_clears_state(self, session, fake_provider):
        await session.refresh()

        await fake_provider.emit("accountsChanged", [OTHER_ACCOUNT])

        assert session.tokens == []
        assert session.detected == {}

    async def test_account_change_discards_in_flight_refresh(
        self, session, fake_provider, fake_explorer
    ):
        """A scan started for the old account never lands in the new session."""
        original = fake_explorer.token_list

        async def switch_mid_listing(address):
            outcome = await original(address)
            await fake_provider.emit("accountsChanged", [OTHER_ACCOUNT])
            return outcome

        fake_explorer.token_list = switch_mid_listing

        assert not await session.refresh()
        assert session.account == OTHER_ACCOUNT
        assert session.detected == {}

    async def test_refresh_loop_wakes_on_account_change(
        self, session, fake_provider, fake_explorer
    ):
        task = asyncio.create_task(session.run_refresh_loop(interval=60))
        try:
            await asyncio.sleep(0.05)
            assert session.detected

            queries_before = len(fake_explorer.log_queries)
            await fake_provider.emit("accountsChanged", [OTHER_ACCOUNT])
            await asyncio.sleep(0.05)

            assert len(fake_explorer.log_queries) > queries_before
            assert fake_explorer.log_queries[-1][1] == OTHER_ACCOUNT
        finally:
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

    async def test_refresh_loop_reports_each_refresh(self, session, fake_provider):
        seen: list[tuple[str | None, int]] = []
        task = asyncio.create_task(
            session.run_refresh_loop(
                interval=60, on_refresh=lambda s: seen.append((s.account, len(s.detected)))
            )
        )
        try:
            await asyncio.sleep(0.05)
            await fake_provider.emit("accountsChanged", [OTHER_ACCOUNT])
            await asyncio.sleep(0.05)
        finally:
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        assert seen[0][1] == 2
        assert seen[-1] == (OTHER_ACCOUNT, 0)

    async def test_refresh_loop_skips_callback_without_account(self, session, fake_provider):
        await fake_provider.emit("accountsChanged", [])
        on_refresh = Mock()
        task = asyncio.create_task(session.run_refresh_loop(interval=60, on_refresh=on_refresh))
        try:
            await asyncio.sleep(0.05)
        finally:
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        on_refresh.assert_not_called()


class TestRevoke:
    async def test_revoke_removes_confirmed(self, session, recorder):
        await session.refresh()
        key = approval_id(USDC, ROUTER)

        result = await session.revoke(key)

        assert result.state is RevokeState.CONFIRMED
        assert key not in session.detected
        entry = recorder.record_revoke.await_args.args[0]
        assert entry.value_secured == Decimal("50.00")
        assert entry.token_symbol == "USDC"

    async def test_unlimited_records_balance_value(self, session, recorder):
        """An unlimited approval is credited with the balance it exposed."""
        await session.refresh()

        await session.revoke(approval_id(WETH, POOL))

        entry = recorder.record_revoke.await_args.args[0]
        assert entry.value_secured == Decimal("6000.00")

    async def test_rejected_stays_detected(self, session, fake_provider):
        from arcrevoke.services.wallet import WalletRpcError

        await session.refresh()
        fake_provider.errors["eth_sendTransaction"] = WalletRpcError(4001, "denied")
        key = approval_id(USDC, ROUTER)

        result = await session.revoke(key)

        assert result.state is RevokeState.REJECTED
        assert key in session.detected

    async def test_unknown_id(self, session):
        with pytest.raises(KeyError):
            await session.revoke("0xnope-0xnope")

    async def test_revoke_selected(self, session, fake_provider):
        await session.refresh()

        report = await session.revoke_selected(list(session.detected))

        assert report.succeeded == 2
        assert session.detected == {}
        assert len(fake_provider.sent) == 2

    async def test_revoke_selected_with_repeated_id(self, session, fake_provider, recorder):
        await session.refresh()
        usdc_id = approval_id(USDC, ROUTER)

        report = await session.revoke_selected([usdc_id, usdc_id])

        assert report.succeeded == 1
        assert report.failed == 0
        assert len(fake_provider.sent) == 1
        assert recorder.record_revoke.await_count == 1
        assert set(session.detected) == {approval_id(WETH, POOL)}

    async def test_revoke_manual_prechecks_allowance(self, session, fake_chain, fake_provider):
        await session.refresh()
        spender = "0x" + "33" * 20

        result = await session.revoke_manual(USDC, spender)

        assert result.state is RevokeState.CONFIRMED
        assert ("allowance", USDC) in fake_chain.calls
        assert len(fake_provider.sent) == 1
        assert result.target.token_symbol == "USDC"

    async def test_revoke_manual_survives_failed_precheck(self, session, fake_chain):
        fake_chain.failing.add(("allowance", USDC))

        result = await session.revoke_manual(USDC, ROUTER)

        assert result.state is RevokeState.CONFIRMED

    async def test_revoke_tokens_for_spender(self, session, fake_provider):
        await session.refresh()

        report = await session.revoke_tokens_for_spender([USDC, WETH], ROUTER)

        assert report.succeeded == 2
        assert [r.target.spender_address for r in report.results] == [ROUTER, ROUTER]
        # The (USDC, ROUTER) approval was revoked along the way
        assert approval_id(USDC, ROUTER) not in session.detected
        assert approval_id(WETH, POOL) in session.detected
