"""
Money helpers.

All payroll arithmetic is done on integer cents with half-up rounding,
so results match the cent-level figures drivers see on their payslips.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

from conduz.app.core.exceptions import ValidationError

Amount = Union[Decimal, int, float, str]

CENT = Decimal("0.01")


def to_cents(value: Amount, field: str = "amount") -> int:
    """Convert a currency amount to integer cents, rounding half-up."""
    if value is None:
        return 0
    try:
        amount = Decimal(str(value)) if not isinstance(value, Decimal) else value
    except InvalidOperation:
        raise ValidationError(f"{field} is not a number", details={"field": field})
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number", details={"field": field})
    return int((amount * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)


def percent_of(cents: int, rate: Decimal) -> int:
    """`cents * rate` rounded half-up to the cent."""
    return int((Decimal(cents) * rate).quantize(Decimal(1), rounding=ROUND_HALF_UP))
