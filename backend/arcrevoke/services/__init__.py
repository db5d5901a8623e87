# ArcRevoke Services
from arcrevoke.services.approval_scanner import ApprovalScanner, DetectedApproval, ScanResult
from arcrevoke.services.chain import ChainReader
from arcrevoke.services.contract_search import ContractSearch
from arcrevoke.services.explorer import BlockExplorerClient
from arcrevoke.services.outcome import Outcome, OutcomeStatus
from arcrevoke.services.pricing import PriceTable
from arcrevoke.services.revoker import Revoker, RevokeState
from arcrevoke.services.session import RevokeSession
from arcrevoke.services.stats import RevokeStatsService
from arcrevoke.services.stats_recorder import StatsRecorder
from arcrevoke.services.token_lister import Token, TokenLister
from arcrevoke.services.user import UserService
from arcrevoke.services.wallet import JsonRpcWalletProvider, WalletConnector

__all__ = [
    "ApprovalScanner",
    "BlockExplorerClient",
    "ChainReader",
    "ContractSearch",
    "DetectedApproval",
    "JsonRpcWalletProvider",
    "Outcome",
    "OutcomeStatus",
    "PriceTable",
    "RevokeSession",
    "RevokeState",
    "RevokeStatsService",
    "Revoker",
    "ScanResult",
    "StatsRecorder",
    "Token",
    "TokenLister",
    "UserService",
    "WalletConnector",
]
