"""Money arithmetic for checkout.

Amounts are :class:`~decimal.Decimal` rounded half-up to two places after
every aggregation step, so sums never drift the way binary floats do.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Quantize ``value`` to cents (round half up)."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(price: Decimal, quantity: int) -> Decimal:
    return to_money(to_money(price) * int(quantity))


def sum_money(amounts: Iterable[Decimal]) -> Decimal:
    total = ZERO
    for amount in amounts:
        total = to_money(total + amount)
    return total


def order_total(subtotal: Decimal, shipping: Decimal, discount: Decimal) -> Decimal:
    """``subtotal + shipping - discount``, rounded."""
    return to_money(to_money(subtotal) + to_money(shipping) - to_money(discount))


def cod_split(total: Decimal, divisor: int = 3) -> tuple[Decimal, Decimal]:
    """
    Split a cash-on-delivery total into (advance charged now, remainder due).

    The remainder is derived by subtraction so both parts always add up to
    ``total`` exactly.
    """
    total = to_money(total)
    advance = to_money(total / Decimal(divisor))
    return advance, to_money(total - advance)


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount (rupees) to minor units (paise)."""
    return int((to_money(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))
