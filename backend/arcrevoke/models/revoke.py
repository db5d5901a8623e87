"""Revoke bookkeeping: the running totals row and the append-only history."""

import uuid
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, Index, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from arcrevoke.models.base import BaseModel

# Fixed key of the one row that carries the running totals. Upserts target it.
STATS_SINGLETON_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")

# decimal(20, 2)
Money = Numeric(20, 2)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RevokeStats(BaseModel):
    """Aggregate counters across every wallet.

    Exactly one logical row exists (``STATS_SINGLETON_ID``). It is created
    lazily and only ever mutated through an atomic upsert.
    """

    __tablename__ = "revoke_stats"

    total_revokes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    total_value_secured: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=Decimal("0"), server_default="0"
    )

    def __repr__(self) -> str:
        return f"<RevokeStats revokes={self.total_revokes} secured={self.total_value_secured}>"


class RevokeHistory(BaseModel):
    """One successful revoke transaction. Immutable once written."""

    __tablename__ = "revoke_history"

    wallet_address: Mapped[str] = mapped_column(Text, nullable=False)
    token_address: Mapped[str] = mapped_column(Text, nullable=False)
    token_symbol: Mapped[str] = mapped_column(Text, nullable=False)
    spender_address: Mapped[str] = mapped_column(Text, nullable=False)
    value_secured: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=Decimal("0"), server_default="0"
    )
    tx_hash: Mapped[str | None] = mapped_column(String(66), nullable=True)
    # Python-side default keeps sub-second ordering on SQLite as well
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
    )

    __table_args__ = (Index("ix_revoke_history_created_at", "created_at"),)

    def __repr__(self) -> str:
        return f"<RevokeHistory {self.token_symbol} {self.spender_address} tx={self.tx_hash}>"
