"""Pydantic schemas for the revoke stats API.

Wire format is camelCase to match the browser client; Python code uses
snake_case field names.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

CENT = Decimal("0.01")
# Largest amount a Numeric(20, 2) column holds
MAX_MONEY = Decimal("999999999999999999.99")


def format_money(value: Decimal | int | float | str | None) -> str:
    """Render a decimal(20,2) amount. Zero is rendered as a bare ``"0"``."""
    amount = Decimal(str(value)) if value is not None else Decimal("0")
    if amount == 0:
        return "0"
    return f"{amount.quantize(CENT, rounding=ROUND_HALF_UP):f}"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class RevokeHistoryCreate(_CamelModel):
    """Body of ``POST /api/revoke``."""

    wallet_address: str = Field(..., min_length=1, max_length=128)
    token_address: str = Field(..., min_length=1, max_length=128)
    token_symbol: str = Field(..., min_length=1, max_length=64)
    spender_address: str = Field(..., min_length=1, max_length=128)
    value_secured: Decimal = Field(default=Decimal("0"), ge=0, le=MAX_MONEY)
    tx_hash: str | None = Field(default=None, max_length=66)

    @field_validator("value_secured", mode="before")
    @classmethod
    def default_missing_value(cls, v: object) -> object:
        # Explicit null and empty string both mean "nothing secured"
        if v is None or v == "":
            return Decimal("0")
        return v

    @field_validator("value_secured")
    @classmethod
    def round_to_cents(cls, v: Decimal) -> Decimal:
        return v.quantize(CENT, rounding=ROUND_HALF_UP)


class RevokeHistoryResponse(_CamelModel):
    """A stored revoke event."""

    id: UUID
    wallet_address: str
    token_address: str
    token_symbol: str
    spender_address: str
    value_secured: Decimal
    tx_hash: str | None
    created_at: datetime | None

    @field_serializer("value_secured")
    def serialize_value(self, value: Decimal) -> str:
        return f"{Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP):f}"


class RevokeStatsResponse(_CamelModel):
    """Running totals across all wallets."""

    total_revokes: int
    total_value_secured: str

    @classmethod
    def from_totals(cls, total_revokes: int, total_value_secured: Decimal) -> "RevokeStatsResponse":
        return cls(
            total_revokes=total_revokes,
            total_value_secured=format_money(total_value_secured),
        )
