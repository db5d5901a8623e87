# ArcRevoke Schemas
from arcrevoke.schemas.revoke import (
    RevokeHistoryCreate,
    RevokeHistoryResponse,
    RevokeStatsResponse,
    format_money,
)

__all__ = [
    "RevokeHistoryCreate",
    "RevokeHistoryResponse",
    "RevokeStatsResponse",
    "format_money",
]
