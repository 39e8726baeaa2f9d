"""Cart persistence."""

from __future__ import annotations

from typing import cast

from sqlalchemy import select

from storefront.models.cart import Cart, CartItem
from storefront.repositories.base import BaseRepository


class CartRepository(BaseRepository[Cart]):
    """Persistence for the per-user :class:`Cart` and its lines."""

    model = Cart

    def _filterable_fields(self):
        return {"user_id": Cart.user_id}

    def get_for_user(self, user_id: int) -> Cart | None:
        stmt = select(Cart).where(Cart.user_id == user_id)
        return cast(Cart | None, self.session.execute(stmt).scalars().first())

    def get_owned(self, cart_id: int, user_id: int) -> Cart | None:
        stmt = select(Cart).where(Cart.id == cart_id, Cart.user_id == user_id)
        return cast(Cart | None, self.session.execute(stmt).scalars().first())

    def get_or_create(self, user_id: int) -> Cart:
        cart = self.get_for_user(user_id)
        if cart is None:
            cart = self.add(Cart(user_id=user_id))
        return cart

    def add_line(self, cart: Cart, line: CartItem) -> CartItem:
        cart.items.append(line)
        self.flush()
        return line

    def remove_line(self, cart: Cart, line: CartItem) -> None:
        cart.items.remove(line)
        self.flush()

    def clear(self, cart: Cart) -> None:
        """Remove every line; the cart row itself is kept."""
        cart.items.clear()
        self.flush()
