"""ArcRevoke command line.

``arcrevoke serve`` runs the stats backend. The other commands drive a
revoke session against a wallet's JSON-RPC endpoint (``WALLET_RPC_URL``).
"""

import argparse
import asyncio
import sys
from collections.abc import Sequence

import httpx

from arcrevoke.core import get_network, settings, setup_logging
from arcrevoke.schemas.revoke import RevokeStatsResponse
from arcrevoke.services.approval_scanner import ApprovalScanner
from arcrevoke.services.chain import ChainReader
from arcrevoke.services.contract_search import ContractSearch, ContractSearchError
from arcrevoke.services.explorer import BlockExplorerClient
from arcrevoke.services.outcome import OutcomeStatus
from arcrevoke.services.pricing import format_usd
from arcrevoke.services.revoker import BatchRevokeReport, RevokeResult, Revoker
from arcrevoke.services.session import RevokeSession
from arcrevoke.services.stats_recorder import StatsRecorder
from arcrevoke.services.token_lister import TokenLister
from arcrevoke.services.wallet import JsonRpcWalletProvider, WalletConnector, WalletError


class _Context:
    """Wires the services for one CLI invocation."""

    def __init__(self, record: bool = True):
        self.network = get_network()
        self.provider = JsonRpcWalletProvider()
        self.explorer = BlockExplorerClient()
        self.chain = ChainReader()
        self.recorder = StatsRecorder() if record else None
        self.wallet = WalletConnector(self.provider, self.network)
        self.session = RevokeSession(
            wallet=self.wallet,
            lister=TokenLister(self.explorer, self.chain),
            scanner=ApprovalScanner(self.explorer, self.chain),
            revoker=Revoker(self.wallet, self.chain, self.recorder),
            chain=self.chain,
        )

    async def connect(self) -> str:
        account = await self.wallet.check_connection()
        if account is None:
            account = await self.wallet.connect()
        if self.wallet.wrong_network:
            print(f"Warning: wallet is not on {self.network.name}", file=sys.stderr)
        return account

    async def close(self) -> None:
        await self.provider.close()
        await self.explorer.close()
        if self.recorder is not None:
            await self.recorder.close()


def _print_result(network, result: RevokeResult) -> None:
    target = result.target
    label = target.token_symbol or target.token_address
    line = f"{label} -> {target.spender_address}: {result.state.value}"
    if result.tx_hash:
        line += f" ({network.tx_url(result.tx_hash)})"
    if result.error and not result.ok:
        line += f" - {result.error}"
    print(line)


def _print_report(network, report: BatchRevokeReport) -> None:
    for result in report.results:
        _print_result(network, result)
    print(f"{report.succeeded} revoked, {report.failed} not revoked")


async def _tokens(args: argparse.Namespace) -> int:
    ctx = _Context(record=False)
    try:
        account = await ctx.connect()
        listing = await ctx.session.lister.list_tokens(account)
        if listing.status is OutcomeStatus.FAILED:
            print(f"Could not load tokens: {listing.reason}", file=sys.stderr)
            return 1
        if not listing.items:
            print("No tokens found")
        for token in listing.items:
            print(
                f"{token.symbol:<10} {token.human_balance:>24f}  "
                f"{token.name}  {token.contract_address}"
            )
        return 0
    finally:
        await ctx.close()


def _print_approvals(session: RevokeSession) -> None:
    approvals = session.approvals
    if not approvals:
        print("No active approvals found")
    for approval in approvals:
        print(f"{approval.id}  {approval.token_symbol:<10} {approval.display_value:>12}")
    scan = session.last_scan
    if scan is not None and not scan.complete:
        for token, reason in scan.failures.items():
            print(f"Warning: {token} not fully scanned: {reason}", file=sys.stderr)


def _print_stats(stats: RevokeStatsResponse) -> None:
    print(
        f"Global: {stats.total_revokes} revokes, "
        f"{format_usd(stats.total_value_secured)} secured"
    )


async def _scan(args: argparse.Namespace) -> int:
    ctx = _Context(record=False)
    try:
        await ctx.connect()
        await ctx.session.refresh()
        if ctx.session.token_status is OutcomeStatus.FAILED:
            print("Could not load tokens from the explorer", file=sys.stderr)
            return 1
        _print_approvals(ctx.session)
        return 0
    finally:
        await ctx.close()


async def _watch(args: argparse.Namespace) -> int:
    """Follow the wallet: rescan on every account change and on a timer."""
    ctx = _Context()
    try:
        account = await ctx.connect()
        print(f"Watching {account} (Ctrl-C to stop)")
        await asyncio.gather(
            ctx.provider.watch(args.poll_interval),
            ctx.session.run_refresh_loop(args.interval, on_refresh=_print_approvals),
            ctx.recorder.poll_stats(_print_stats),
        )
        return 0
    finally:
        await ctx.close()


async def _revoke(args: argparse.Namespace) -> int:
    if (args.token or args.tokens) and not args.spender:
        print("--spender is required with --token/--tokens", file=sys.stderr)
        return 1
    ctx = _Context(record=not args.no_record)
    try:
        await ctx.connect()
        if args.token and args.spender:
            result = await ctx.session.revoke_manual(args.token, args.spender)
            _print_result(ctx.network, result)
            return 0 if result.ok else 1
        if args.tokens and args.spender:
            report = await ctx.session.revoke_tokens_for_spender(args.tokens, args.spender)
            _print_report(ctx.network, report)
            return 0 if report.failed == 0 else 1

        await ctx.session.refresh()
        ids = list(ctx.session.detected) if args.all else args.ids
        if not ids:
            print("Nothing to revoke")
            return 0
        try:
            report = await ctx.session.revoke_selected(ids)
        except KeyError as e:
            print(f"Unknown approval: {e}", file=sys.stderr)
            return 1
        _print_report(ctx.network, report)
        return 0 if report.failed == 0 else 1
    finally:
        await ctx.close()


async def _search(args: argparse.Namespace) -> int:
    try:
        result = await ContractSearch(ChainReader()).search(args.address)
    except ContractSearchError as e:
        print(str(e), file=sys.stderr)
        return 1
    print(f"Name:         {result.name}")
    print(f"Symbol:       {result.symbol}")
    print(f"Decimals:     {result.decimals}")
    print(f"Total supply: {result.formatted_total_supply:f}")
    return 0


async def _stats(args: argparse.Namespace) -> int:
    recorder = StatsRecorder()
    try:
        stats = await recorder.get_stats()
        print(f"Total revokes:        {stats.total_revokes}")
        print(f"Total value secured:  {format_usd(stats.total_value_secured)}")
        if args.recent:
            for row in await recorder.get_recent_revokes(args.recent):
                print(
                    f"{row.created_at}  {row.token_symbol:<10} "
                    f"{row.spender_address}  ${row.value_secured:.2f}"
                )
        return 0
    finally:
        await recorder.close()


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("arcrevoke.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="arcrevoke", description="Revoke ERC-20 approvals on Arc Testnet"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the stats backend")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")
    serve.set_defaults(func=_serve)

    tokens = sub.add_parser("tokens", help="list tokens held by the connected wallet")
    tokens.set_defaults(func=_tokens)

    scan = sub.add_parser("scan", help="find active approvals")
    scan.set_defaults(func=_scan)

    watch = sub.add_parser("watch", help="keep scanning as the wallet changes")
    watch.add_argument(
        "--interval", type=float, default=None, help="seconds between rescans"
    )
    watch.add_argument(
        "--poll-interval", type=float, default=2.0, help="seconds between wallet polls"
    )
    watch.set_defaults(func=_watch)

    revoke = sub.add_parser("revoke", help="revoke approvals")
    revoke.add_argument("ids", nargs="*", help="approval ids as printed by 'scan'")
    revoke.add_argument("--all", action="store_true", help="revoke every detected approval")
    revoke.add_argument("--token", help="token address for a manual revoke")
    revoke.add_argument("--tokens", nargs="+", help="revoke --spender on each of these tokens")
    revoke.add_argument("--spender", help="spender address")
    revoke.add_argument(
        "--no-record", action="store_true", help="do not report to the stats backend"
    )
    revoke.set_defaults(func=_revoke)

    search = sub.add_parser("search", help="describe a token contract")
    search.add_argument("address")
    search.set_defaults(func=_search)

    stats = sub.add_parser("stats", help="show global revoke stats")
    stats.add_argument(
        "--recent", type=int, default=0, metavar="N", help="also list the N latest revokes"
    )
    stats.set_defaults(func=_stats)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(settings.log_level, settings.log_format)

    if args.command == "serve":
        return args.func(args)
    try:
        return asyncio.run(args.func(args))
    except WalletError as e:
        print(f"Wallet error: {e}", file=sys.stderr)
        return 1
    except httpx.HTTPError as e:
        print(f"Request failed: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
