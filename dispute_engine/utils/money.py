"""Exact decimal money helpers.

Every amount that reaches the ledger passes through ``to_money`` so the
engine never does arithmetic on binary floats.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from dispute_engine.core.exceptions import ValidationError

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Decimal | int | str) -> Decimal:
    """Convert a value to a Decimal quantized to cents.

    Args:
        value: Decimal, int or numeric string

    Returns:
        Decimal: Amount rounded half-up to two decimal places

    Raises:
        ValidationError: If the value is a float or not a finite number
    """
    if isinstance(value, float):
        raise ValidationError("Monetary amounts must be exact decimals, not floats")
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid monetary amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValidationError(f"Invalid monetary amount: {value!r}")
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def is_cent_precise(value: Decimal) -> bool:
    """Return True if the amount has no fractional cents."""
    return value == value.quantize(CENTS)
