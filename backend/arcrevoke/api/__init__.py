# ArcRevoke API
from arcrevoke.api.router import api_router

__all__ = ["api_router"]
