"""Pytest configuration and fixtures for ArcRevoke tests.

Database tests run against in-memory SQLite (aiosqlite). Chain, explorer and
wallet access is replaced with small in-memory fakes so no network is used.
"""

import os
from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["AUTO_CREATE_TABLES"] = "false"

from arcrevoke.services.explorer import APPROVAL_TOPIC, pad_topic  # noqa: E402
from arcrevoke.services.outcome import Outcome  # noqa: E402
from arcrevoke.services.wallet import WalletProvider, WalletRpcError  # noqa: E402

ARC_CHAIN_ID_HEX = "0x4cef52"


# --- Database Fixtures ---


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """A fresh in-memory database per test."""
    import arcrevoke.models  # noqa: F401
    from arcrevoke.core.database import Base

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for testing."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client with database override."""
    from arcrevoke.core.database import get_db
    from arcrevoke.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# --- Chain / explorer / wallet fakes ---


class FakeChain:
    """Stands in for ChainReader. Keys are lower-cased addresses."""

    def __init__(self):
        self.allowances: dict[tuple[str, str, str], int] = {}
        self.balances: dict[tuple[str, str], int] = {}
        self.token_decimals: dict[str, int] = {}
        self.metadata: dict[str, dict[str, Any]] = {}
        self.code: dict[str, bytes] = {}
        self.receipts: dict[str, dict[str, Any]] = {}
        # (method, token) pairs that raise
        self.failing: set[tuple[str, str]] = set()
        self.calls: list[tuple[str, ...]] = []

    def _check(self, method: str, address: str) -> None:
        self.calls.append((method, address.lower()))
        if (method, address.lower()) in self.failing:
            raise RuntimeError(f"{method} reverted")

    def set_allowance(self, token: str, owner: str, spender: str, amount: int) -> None:
        self.allowances[(token.lower(), owner.lower(), spender.lower())] = amount

    async def allowance(self, token_address: str, owner: str, spender: str) -> int:
        self._check("allowance", token_address)
        return self.allowances.get((token_address.lower(), owner.lower(), spender.lower()), 0)

    async def balance_of(self, token_address: str, owner: str) -> int:
        self._check("balanceOf", token_address)
        return self.balances.get((token_address.lower(), owner.lower()), 0)

    async def decimals(self, token_address: str) -> int:
        self._check("decimals", token_address)
        return self.token_decimals.get(token_address.lower(), 18)

    def _meta(self, method: str, token_address: str, key: str) -> Any:
        self._check(method, token_address)
        meta = self.metadata.get(token_address.lower(), {})
        if key not in meta:
            raise RuntimeError("execution reverted")
        return meta[key]

    async def name(self, token_address: str) -> str:
        return self._meta("name", token_address, "name")

    async def symbol(self, token_address: str) -> str:
        return self._meta("symbol", token_address, "symbol")

    async def total_supply(self, token_address: str) -> int:
        return self._meta("totalSupply", token_address, "totalSupply")

    async def get_code(self, address: str) -> bytes:
        self._check("getCode", address)
        return self.code.get(address.lower(), b"")

    async def wait_for_receipt(self, tx_hash: str, timeout: float = 120.0) -> dict[str, Any]:
        self.calls.append(("waitForReceipt", tx_hash))
        receipt = self.receipts.get(tx_hash, {"status": 1, "transactionHash": tx_hash})
        if isinstance(receipt, Exception):
            raise receipt
        return receipt


class FakeExplorer:
    """Stands in for BlockExplorerClient."""

    def __init__(self):
        self.token_outcome: Outcome[dict[str, Any]] = Outcome.of([])
        self.logs: dict[str, Outcome[dict[str, Any]]] = {}
        self.log_queries: list[tuple[str, str]] = []

    def set_tokens(self, entries: list[dict[str, Any]]) -> None:
        self.token_outcome = Outcome.of(entries)

    def add_approval(self, token: str, owner: str, spender: str, value: int = 1) -> None:
        outcome = self.logs.get(token.lower(), Outcome.of([]))
        log = {
            "address": token,
            "topics": [APPROVAL_TOPIC, pad_topic(owner), pad_topic(spender), None],
            "data": hex(value),
        }
        self.logs[token.lower()] = Outcome.of([*outcome.items, log])

    async def token_list(self, address: str) -> Outcome[dict[str, Any]]:
        return self.token_outcome

    async def approval_logs(self, token_address: str, owner: str) -> Outcome[dict[str, Any]]:
        self.log_queries.append((token_address, owner))
        return self.logs.get(token_address.lower(), Outcome.of([]))


class FakeWalletProvider(WalletProvider):
    """In-memory EIP-1193 wallet.

    ``errors`` maps a method name to the WalletRpcError it should raise.
    """

    def __init__(self, accounts: list[str] | None = None, chain_id: str = ARC_CHAIN_ID_HEX):
        super().__init__()
        self.accounts = list(accounts or [])
        self.chain_id = chain_id
        self.known_chains = {chain_id}
        self.authorized = False
        self.errors: dict[str, WalletRpcError] = {}
        self.requests: list[tuple[str, Any]] = []
        self.sent: list[dict[str, Any]] = []

    async def request(self, method: str, params: list[Any] | None = None) -> Any:
        self.requests.append((method, params))
        if method in self.errors:
            raise self.errors[method]

        if method == "eth_accounts":
            return list(self.accounts) if self.authorized else []
        if method == "eth_requestAccounts":
            self.authorized = True
            return list(self.accounts)
        if method == "eth_chainId":
            return self.chain_id
        if method == "wallet_switchEthereumChain":
            target = params[0]["chainId"]
            if target not in self.known_chains:
                raise WalletRpcError(4902, "Unrecognized chain ID")
            self.chain_id = target
            return None
        if method == "wallet_addEthereumChain":
            self.known_chains.add(params[0]["chainId"])
            self.chain_id = params[0]["chainId"]
            return None
        if method == "eth_sendTransaction":
            self.sent.append(params[0])
            return "0x" + f"{len(self.sent):064x}"
        raise WalletRpcError(-32601, f"Method {method} not supported")

    def methods(self) -> list[str]:
        return [method for method, _ in self.requests]


@pytest.fixture
def fake_chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def fake_explorer() -> FakeExplorer:
    return FakeExplorer()


@pytest.fixture
def owner() -> str:
    return "0x" + "ab" * 20


@pytest.fixture
def fake_provider(owner: str) -> FakeWalletProvider:
    return FakeWalletProvider(accounts=[owner])
