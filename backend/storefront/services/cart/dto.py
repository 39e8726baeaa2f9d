"""DTOs for CartService."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class CartLineOut:
    """
    Cart line as shown to the shopper.

    ``price`` is a display snapshot refreshed from the product row on every
    change; checkout re-reads the product regardless.
    """

    product_id: int
    name: str
    slug: str | None
    image: str | None
    price: Decimal
    quantity: int


@dataclass(frozen=True, slots=True)
class CartChangeOut:
    """
    Result of a cart mutation.

    :param count: Total units in the cart afterwards.
    :param line: The affected line, ``None`` when it was removed.
    """

    count: int
    line: CartLineOut | None = None

    @property
    def quantity(self) -> int:
        return self.line.quantity if self.line is not None else 0


@dataclass(frozen=True, slots=True)
class CartOut:
    id: int
    count: int
    items: list[CartLineOut]
