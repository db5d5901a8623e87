"""Tests for the command line entry point."""

from decimal import Decimal
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from arcrevoke.cli import build_parser, main
from arcrevoke.schemas.revoke import RevokeStatsResponse
from arcrevoke.services.contract_search import ContractSearchResult


class TestParser:
    def test_serve_defaults(self):
        args = build_parser().parse_args(["serve"])

        assert args.host == "127.0.0.1"
        assert args.port == 8000

    def test_revoke_options(self):
        args = build_parser().parse_args(
            ["revoke", "--tokens", "0x1", "0x2", "--spender", "0x3"]
        )

        assert args.tokens == ["0x1", "0x2"]
        assert args.spender == "0x3"
        assert not args.all

    def test_watch_options(self):
        args = build_parser().parse_args(["watch", "--interval", "15"])

        assert args.interval == 15.0
        assert args.poll_interval == 2.0

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestCommands:
    def test_search_invalid_address(self, capsys):
        assert main(["search", "0x123"]) == 1
        assert "valid contract address" in capsys.readouterr().err

    def test_search_prints_metadata(self, capsys):
        result = ContractSearchResult(
            address="0x" + "ab" * 20,
            name="USD Coin",
            symbol="USDC",
            decimals=6,
            total_supply=10**9,
        )
        with patch("arcrevoke.cli.ContractSearch.search", AsyncMock(return_value=result)):
            assert main(["search", result.address]) == 0

        out = capsys.readouterr().out
        assert "USD Coin" in out
        assert "1000" in out

    def test_stats(self, capsys):
        stats = RevokeStatsResponse.from_totals(3, Decimal("1500"))
        with patch("arcrevoke.cli.StatsRecorder.get_stats", AsyncMock(return_value=stats)):
            assert main(["stats"]) == 0

        out = capsys.readouterr().out
        assert "3" in out
        assert "$1.50K" in out

    def test_stats_backend_unreachable(self, capsys):
        failing = AsyncMock(side_effect=httpx.ConnectError("connection refused"))
        with patch("arcrevoke.cli.StatsRecorder.get_stats", failing):
            assert main(["stats"]) == 1

        err = capsys.readouterr().err
        assert "Request failed" in err
        assert "connection refused" in err

    def test_stats_backend_error_status(self, capsys):
        request = httpx.Request("GET", "http://localhost:8000/api/stats")
        error = httpx.HTTPStatusError(
            "Server error '500 Internal Server Error'",
            request=request,
            response=httpx.Response(500, request=request),
        )
        with patch("arcrevoke.cli.StatsRecorder.get_stats", AsyncMock(side_effect=error)):
            assert main(["stats"]) == 1

        assert "Request failed" in capsys.readouterr().err

    def test_watch_stops_on_interrupt(self):
        with patch("arcrevoke.cli._watch", AsyncMock(side_effect=KeyboardInterrupt)):
            assert main(["watch"]) == 130

    def test_revoke_requires_spender(self, capsys):
        assert main(["revoke", "--token", "0x" + "ab" * 20]) == 1
        assert "--spender" in capsys.readouterr().err
