"""Revoke stats API endpoints.

Public and unauthenticated: the stats are aggregate and the history only
holds on-chain data.
"""

import logging
import re

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from arcrevoke.core import get_db
from arcrevoke.schemas.revoke import (
    RevokeHistoryCreate,
    RevokeHistoryResponse,
    RevokeStatsResponse,
)
from arcrevoke.services.stats import DEFAULT_RECENT_LIMIT, RevokeStatsService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["stats"])

MAX_RECENT_LIMIT = 100

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_limit(raw: str | None) -> int:
    """Lenient ``limit`` parsing: junk or non-positive values mean the default.

    Only the leading integer counts (``"5abc"`` is 5). Large values are capped.
    """
    match = _LEADING_INT.match(raw or "")
    if match is None:
        return DEFAULT_RECENT_LIMIT
    limit = int(match.group(1))
    if limit <= 0:
        return DEFAULT_RECENT_LIMIT
    return min(limit, MAX_RECENT_LIMIT)


def get_stats_service(db: AsyncSession = Depends(get_db)) -> RevokeStatsService:
    return RevokeStatsService(db)


@router.get("/stats", response_model=RevokeStatsResponse)
async def get_stats(
    service: RevokeStatsService = Depends(get_stats_service),
) -> RevokeStatsResponse:
    """Running totals, creating the totals row on first use."""
    try:
        total_revokes, total_value_secured = await service.get_stats()
    except SQLAlchemyError as e:
        logger.error(f"Failed to fetch stats: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch stats",
        ) from e
    return RevokeStatsResponse.from_totals(total_revokes, total_value_secured)


@router.post("/revoke", response_model=RevokeHistoryResponse)
async def record_revoke(
    data: RevokeHistoryCreate,
    service: RevokeStatsService = Depends(get_stats_service),
) -> RevokeHistoryResponse:
    """Record a confirmed revoke and add it to the totals."""
    try:
        record = await service.record_revoke(data)
    except SQLAlchemyError as e:
        logger.error(f"Failed to record revoke: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to record revoke",
        ) from e
    return RevokeHistoryResponse.model_validate(record)


@router.get("/revokes/recent", response_model=list[RevokeHistoryResponse])
async def get_recent_revokes(
    limit: str | None = Query(None),
    service: RevokeStatsService = Depends(get_stats_service),
) -> list[RevokeHistoryResponse]:
    """Most recent revokes, newest first."""
    try:
        records = await service.get_recent_revokes(parse_limit(limit))
    except SQLAlchemyError as e:
        logger.error(f"Failed to fetch recent revokes: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch recent revokes",
        ) from e
    return [RevokeHistoryResponse.model_validate(r) for r in records]
