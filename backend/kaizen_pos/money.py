"""
Money helpers.

All amounts are integer cents. Currency-unit inputs from the API
(15, "15.00", 15.5) are converted once at the boundary; everything past that
point is integer arithmetic with half-up rounding wherever a division occurs.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .validation import ValidationError

# Maximum amount: 9,999,999.99 (999,999,999 cents)
MAX_AMOUNT_CENTS = 999_999_999


def to_cents(value, *, field: str = "amount") -> int:
    """
    Convert a currency-unit value to integer cents (half-up).

    Rejects booleans, non-numeric strings, NaN/Infinity and negative values.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if amount < 0:
        raise ValidationError(f"{field} must be >= 0")

    cents = int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if cents > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS / 100:,.2f}")
    return cents


def from_cents(cents: int | None) -> float | None:
    """Currency-unit value for JSON output (display only, cents stay authoritative)."""
    if cents is None:
        return None
    return float(Decimal(cents) / 100)


def apply_rate_bps(amount_cents: int, rate_bps: int) -> int:
    """
    amount * rate, rounded half-up to the cent.

    Rates are basis points (1200 = 12%). Only defined for non-negative amounts.
    """
    if amount_cents < 0:
        raise ValueError("amount_cents must be >= 0")
    # nearest-cent rounding (half-up)
    return (amount_cents * rate_bps + 5_000) // 10_000


def percent_to_bps(value, *, field: str = "percent") -> int:
    """Convert a 0-100 percentage (may carry two decimals) to basis points."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        pct = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")
    if not pct.is_finite() or pct < 0 or pct > 100:
        raise ValidationError(f"{field} must be between 0 and 100")
    return int((pct * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
