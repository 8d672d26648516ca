"""Investment yield calculation"""

from decimal import Decimal, ROUND_HALF_UP


def monthly_yield_cents(principal_cents: int, rate_percent: float) -> int:
    """
    One month of yield on a principal, rounded half-up to the cent.

    Rates go through str() so 6.5 stays exactly 6.5 instead of its binary
    float expansion.

    Example:
        100000 cents at 6.5% -> 6500 cents
    """
    if principal_cents <= 0 or rate_percent <= 0:
        return 0
    raw = Decimal(principal_cents) * Decimal(str(rate_percent)) / Decimal(100)
    return int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

