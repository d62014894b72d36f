from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_DOWN, ROUND_HALF_UP

ZERO = Decimal("0.00")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_decimal(x) -> Decimal:
    """
    Coerce int/float/str/Decimal into a Decimal without binary float noise.
    Floats go through str() so 0.1 becomes Decimal("0.1"), not 0.1000000000000000055...
    """
    if isinstance(x, Decimal):
        return x
    if x is None:
        raise ValueError("Amount is required.")
    try:
        return Decimal(str(x))
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Invalid decimal value: {x!r}")


def q2(x) -> Decimal:
    """Round half-up to 2 decimal places."""
    return to_decimal(x).quantize(CENT, rounding=ROUND_HALF_UP)


def floor2(x) -> Decimal:
    return to_decimal(x).quantize(CENT, rounding=ROUND_DOWN)


def to_cents(x) -> int:
    return int(q2(x) * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)


def clamp_ratio(x) -> float:
    r = float(x or 0.0)
    if r != r:  # NaN
        return 0.0
    return max(0.0, min(1.0, r))
