"""ArcRevoke - find and revoke ERC-20 approvals on Arc Testnet."""

__version__ = "0.1.0"
