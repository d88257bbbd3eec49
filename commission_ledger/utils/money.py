"""
Money helpers for the commission ledger
"""

from decimal import Decimal, ROUND_HALF_UP, ROUND_DOWN, InvalidOperation
from typing import Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """
    Convert to Decimal without going through binary float.

    Raises:
        ValueError: If the value is not a number or is NaN/Infinity
    """
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except InvalidOperation as e:
            raise ValueError(f"Invalid monetary value: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"Monetary value must be finite: {value!r}")
    return result


def quantize_money(value: Number) -> Decimal:
    """Round half-up to two fractional digits"""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def apply_rate(amount: Number, rate: Number) -> Decimal:
    """Return ``amount * rate`` rounded to cents"""
    return quantize_money(to_decimal(amount) * to_decimal(rate))


def whole_units(amount: Number) -> int:
    """Whole currency units contained in ``amount``, rounded toward zero"""
    return int(to_decimal(amount).quantize(Decimal("1"), rounding=ROUND_DOWN))
