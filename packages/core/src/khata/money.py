"""Decimal helpers shared by the calculators."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from khata.errors import InvalidInputError

Amount = Union[Decimal, int, float, str]

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_decimal(value: Amount, field: str = "amount") -> Decimal:
    """Convert a form value into a finite Decimal.

    Floats go through ``str`` so that 0.1 stays 0.1.

    Raises:
        InvalidInputError: If the value is missing, non-numeric or not finite.
    """
    if value is None or isinstance(value, bool):
        raise InvalidInputError(f"{field} must be a number", details={field: value})
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (TypeError, ValueError, InvalidOperation) as exc:
        raise InvalidInputError(
            f"{field} must be a number", details={field: value}
        ) from exc
    if not result.is_finite():
        raise InvalidInputError(f"{field} must be finite", details={field: value})
    return result


def to_non_negative(value: Amount, field: str = "amount") -> Decimal:
    """Like :func:`to_decimal` but also rejects negatives."""
    result = to_decimal(value, field)
    if result < 0:
        raise InvalidInputError(f"{field} cannot be negative", details={field: str(result)})
    return result


def quantize_money(amount: Decimal, quantize: Decimal = CENT) -> Decimal:
    """Round half-up to the currency's minor unit.

    Raises:
        InvalidInputError: If the amount is too large to carry paise
            within the decimal context precision.
    """
    try:
        return amount.quantize(quantize, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise InvalidInputError(
            "amount is too large", details={"amount": str(amount)}
        ) from exc


def sum_amounts(amounts: Iterable[Decimal]) -> Decimal:
    """Sum Decimals starting from zero."""
    return sum(amounts, ZERO)
