"""Revoke stats service - the backend store behind /api/stats and /api/revoke."""

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from arcrevoke.models import STATS_SINGLETON_ID, RevokeHistory, RevokeStats
from arcrevoke.schemas.revoke import RevokeHistoryCreate

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 10

_UPSERT_INSERTS: dict[str, Any] = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class RevokeStatsService:
    """Append-only revoke history plus the singleton running totals.

    The totals row is never read-modified-written from Python. Initialisation
    and increments are single ``INSERT ... ON CONFLICT`` statements, so
    concurrent writers cannot lose updates.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    def _insert(self) -> Any:
        dialect = self.db.get_bind().dialect.name
        try:
            return _UPSERT_INSERTS[dialect]
        except KeyError:
            raise RuntimeError(f"Atomic stats upsert is not supported on {dialect}") from None

    async def _ensure_stats_row(self) -> None:
        stmt = (
            self._insert()(RevokeStats)
            .values(id=STATS_SINGLETON_ID, total_revokes=0, total_value_secured=Decimal("0"))
            .on_conflict_do_nothing(index_elements=[RevokeStats.id])
        )
        await self.db.execute(stmt)

    async def _increment_stats(self, value_secured: Decimal) -> None:
        insert = self._insert()
        stmt = insert(RevokeStats).values(
            id=STATS_SINGLETON_ID,
            total_revokes=1,
            total_value_secured=value_secured,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[RevokeStats.id],
            set_={
                "total_revokes": RevokeStats.total_revokes + 1,
                "total_value_secured": RevokeStats.total_value_secured
                + stmt.excluded.total_value_secured,
            },
        )
        await self.db.execute(stmt)

    async def get_stats(self) -> tuple[int, Decimal]:
        """Return ``(total_revokes, total_value_secured)``, creating the row if absent."""
        await self._ensure_stats_row()
        result = await self.db.execute(
            select(RevokeStats.total_revokes, RevokeStats.total_value_secured).where(
                RevokeStats.id == STATS_SINGLETON_ID
            )
        )
        total_revokes, total_value_secured = result.one()
        await self.db.commit()
        return total_revokes, Decimal(str(total_value_secured or 0))

    async def record_revoke(self, data: RevokeHistoryCreate) -> RevokeHistory:
        """Append a history row and bump the totals in one transaction."""
        record = RevokeHistory(
            wallet_address=data.wallet_address,
            token_address=data.token_address,
            token_symbol=data.token_symbol,
            spender_address=data.spender_address,
            value_secured=data.value_secured,
            tx_hash=data.tx_hash,
        )
        self.db.add(record)
        try:
            await self.db.flush()
            await self._increment_stats(data.value_secured)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Recorded revoke of %s for spender %s (secured %s, tx %s)",
            data.token_symbol,
            data.spender_address,
            data.value_secured,
            data.tx_hash,
        )
        return record

    async def get_recent_revokes(self, limit: int = DEFAULT_RECENT_LIMIT) -> list[RevokeHistory]:
        """Newest-first history, at most ``limit`` rows."""
        result = await self.db.execute(
            select(RevokeHistory)
            .order_by(RevokeHistory.created_at.desc(), RevokeHistory.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
