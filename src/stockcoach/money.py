"""Utilities for working with monetary values and share quantities."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

CENT = Decimal("0.01")

AmountLike = Union[Decimal, int, float, str]


def to_decimal(value: AmountLike) -> Decimal:
    """Convert ``value`` to an exact, finite :class:`~decimal.Decimal`.

    Floats go through ``str`` so ``150.1`` becomes ``Decimal("150.1")`` rather
    than its binary expansion. Booleans, NaN and infinities are rejected.
    """

    if isinstance(value, bool):
        raise TypeError("Booleans are not amounts.")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValueError(f"Not a number: {value!r}") from exc
    else:
        raise TypeError(f"Unsupported amount type: {type(value)!r}")

    if not result.is_finite():
        raise ValueError(f"Amount must be finite, got {value!r}.")
    return result


def to_cents(value: AmountLike) -> Decimal:
    """Return ``value`` rounded half-up to two decimal places."""

    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def require_positive(amount: Decimal, *, allow_zero: bool = False) -> Decimal:
    """Ensure ``amount`` is positive (or non-negative when ``allow_zero`` is true)."""

    if allow_zero:
        if amount < Decimal("0"):
            raise ValueError("Amount must be zero or greater.")
    else:
        if amount <= Decimal("0"):
            raise ValueError("Amount must be greater than zero.")
    return amount


def format_currency(amount: Decimal) -> str:
    """Return ``amount`` as a currency formatted string (e.g. ``$12.34``)."""

    cents = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    if cents < 0:
        return f"-${-cents:,.2f}"
    return f"${cents:,.2f}"


def format_quantity(shares: Decimal) -> str:
    """Render a share count without trailing zeros (``7``, ``2.5``)."""

    if shares == shares.to_integral_value():
        return str(shares.quantize(Decimal("1")))
    return format(shares.normalize(), "f")
