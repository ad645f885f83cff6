"""Integer arithmetic utilities for cents-based pricing.

All prices, fees, discounts and totals use int (cents). No float, no Decimal.
"""


def div_round_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounded to nearest, halves away from zero.

    Matches how the menu prices were always rounded for display:
    348.5 -> 349, -348.5 -> -349.
    """
    if denominator <= 0:
        raise ValueError(f"denominator must be positive, got {denominator}")
    if numerator < 0:
        return -((-numerator * 2 + denominator) // (2 * denominator))
    return (numerator * 2 + denominator) // (2 * denominator)


def apply_bps(amount: int, bps: int) -> int:
    """amount x bps / 10000, rounded half-up. 3480 @ 1000 bps -> 348."""
    if amount == 0 or bps == 0:
        return 0
    return div_round_half_up(amount * bps, 10000)


def cents_to_display(cents: int, symbol: str = "R$") -> str:
    """Convert cents to display string: 2000 -> 'R$ 20.00', -1200 -> '-R$ 12.00'."""
    if cents < 0:
        abs_cents = -cents
        return f"-{symbol} {abs_cents // 100:,}.{abs_cents % 100:02d}"
    return f"{symbol} {cents // 100:,}.{cents % 100:02d}"
