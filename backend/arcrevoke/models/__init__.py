# ArcRevoke Models
from arcrevoke.models.base import BaseModel
from arcrevoke.models.revoke import STATS_SINGLETON_ID, RevokeHistory, RevokeStats
from arcrevoke.models.user import User

__all__ = [
    "BaseModel",
    "RevokeHistory",
    "RevokeStats",
    "STATS_SINGLETON_ID",
    "User",
]
