"""Illustrative USD prices for value-at-risk estimates.

These are placeholders for display, not an oracle.
"""

from decimal import Decimal

from arcrevoke.core import settings

PRICE_TABLE: dict[str, Decimal] = {
    "USDC": Decimal("1"),
    "USDT": Decimal("1"),
    "DAI": Decimal("1"),
    "EURC": Decimal("1.08"),
    "WUSDC": Decimal("1"),
    "ETH": Decimal("3000"),
    "WETH": Decimal("3000"),
    "BTC": Decimal("60000"),
    "WBTC": Decimal("60000"),
}

# Unrecognised symbols are valued at this nominal unit price
DEFAULT_UNIT_PRICE = Decimal("0.10")

# Anything above this is an effectively infinite approval (e.g. 2**256 - 1)
UNLIMITED_VALUE_THRESHOLD = Decimal("1e12")


class PriceTable:
    """Symbol -> unit price lookup with a placeholder fallback."""

    def __init__(
        self,
        prices: dict[str, Decimal] | None = None,
        default_price: Decimal = DEFAULT_UNIT_PRICE,
    ):
        table = dict(PRICE_TABLE if prices is None else prices)
        self.prices = {symbol.upper(): Decimal(price) for symbol, price in table.items()}
        self.default_price = default_price

    @classmethod
    def from_settings(cls) -> "PriceTable":
        return cls({**PRICE_TABLE, **settings.price_overrides})

    def unit_price(self, symbol: str | None) -> Decimal:
        if not symbol:
            return self.default_price
        return self.prices.get(symbol.upper(), self.default_price)

    def estimate_value(self, raw_amount: int, decimals: int, symbol: str | None) -> Decimal | None:
        """USD value of a raw token amount, or ``None`` when it is unbounded."""
        amount = Decimal(raw_amount).scaleb(-decimals)
        value = amount * self.unit_price(symbol)
        if value > UNLIMITED_VALUE_THRESHOLD:
            return None
        return value


def format_usd(value: Decimal | str | None) -> str:
    """Compact currency display: $12.34, $5.67K, $8.90M."""
    if value is None or value == "":
        return "$0.00"
    amount = Decimal(str(value))
    if amount < 1000:
        return f"${amount:.2f}"
    if amount < 1_000_000:
        return f"${amount / 1000:.2f}K"
    return f"${amount / 1_000_000:.2f}M"
