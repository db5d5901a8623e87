"""ArcRevoke API Router - everything under /api."""

from fastapi import APIRouter

from arcrevoke.api import stats

api_router = APIRouter(prefix="/api")

api_router.include_router(stats.router)
