"""
Pricing - one-time registration fee by exact name length.

The tier table is a declared constant. It is intentionally not
monotonic: three-character names cost more than two- and
four-character names.
"""

from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal

LAMPORTS_PER_SOL = 1_000_000_000

PRICE_TIERS: dict[int, Decimal] = {
    1: Decimal("0.05"),
    2: Decimal("0.05"),
    3: Decimal("0.1"),
    4: Decimal("0.05"),
}
DEFAULT_PRICE = Decimal("0.02")  # 5+ characters
NETWORK_FEE = Decimal("0.001")


@dataclass(frozen=True)
class PriceQuote:
    """Price for a name at the time of the check, in SOL."""

    base: Decimal
    fee: Decimal
    total: Decimal

    @property
    def lamports(self) -> int:
        """Total in lamports, rounded down."""
        return int((self.total * LAMPORTS_PER_SOL).to_integral_value(rounding=ROUND_FLOOR))


def price(name: str) -> PriceQuote:
    """Quote a name. Recomputed on every call, never cached."""
    base = PRICE_TIERS.get(len(name), DEFAULT_PRICE)
    return PriceQuote(base=base, fee=NETWORK_FEE, total=base + NETWORK_FEE)


def lamports_to_sol(lamports: int) -> Decimal:
    """Convert lamports to SOL."""
    return Decimal(lamports) / LAMPORTS_PER_SOL
