"""Static description of the chain ArcRevoke operates on."""

from dataclasses import dataclass, replace
from typing import Any

from arcrevoke.core.config import settings


@dataclass(frozen=True)
class NativeCurrency:
    name: str
    symbol: str
    decimals: int


@dataclass(frozen=True)
class NetworkConfig:
    """Chain identity plus the endpoints used to reach it."""

    chain_id: int
    name: str
    rpc_url: str
    explorer_url: str
    explorer_api_url: str
    currency: NativeCurrency

    @property
    def hex_chain_id(self) -> str:
        return hex(self.chain_id)

    def matches(self, chain_id: str | int | None) -> bool:
        """Whether a wallet-reported chain id (hex string or int) is this network."""
        if chain_id is None:
            return False
        if isinstance(chain_id, str):
            try:
                chain_id = int(chain_id, 16) if chain_id.lower().startswith("0x") else int(chain_id)
            except ValueError:
                return False
        return chain_id == self.chain_id

    def add_chain_params(self) -> dict[str, Any]:
        """Parameter object for `wallet_addEthereumChain`."""
        return {
            "chainId": self.hex_chain_id,
            "chainName": self.name,
            "nativeCurrency": {
                "name": self.currency.name,
                "symbol": self.currency.symbol,
                "decimals": self.currency.decimals,
            },
            "rpcUrls": [self.rpc_url],
            "blockExplorerUrls": [self.explorer_url],
        }

    def tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_url.rstrip('/')}/tx/{tx_hash}"


ARC_TESTNET = NetworkConfig(
    chain_id=5042002,
    name="Arc Testnet",
    rpc_url="https://rpc.testnet.arc.network",
    explorer_url="https://testnet.arcscan.app",
    explorer_api_url="https://testnet.arcscan.app/api",
    currency=NativeCurrency(name="USDC", symbol="USDC", decimals=18),
)


def get_network() -> NetworkConfig:
    """The target network with endpoint overrides from settings applied."""
    return replace(
        ARC_TESTNET,
        rpc_url=settings.rpc_url,
        explorer_api_url=settings.explorer_api_url,
    )
