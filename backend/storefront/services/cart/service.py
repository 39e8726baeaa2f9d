from __future__ import annotations

import logging

from storefront.models.cart import Cart, CartItem
from storefront.models.product import Product
from storefront.repositories.cart import CartRepository
from storefront.services._shared.base import BaseService, ServiceContext
from storefront.services._shared.errors import NotFoundError, ValidationError
from storefront.services._shared.policies.common import coerce_id

from .dto import CartChangeOut, CartLineOut, CartOut

logger = logging.getLogger(__name__)


def line_to_out(row: CartItem) -> CartLineOut:
    return CartLineOut(
        product_id=row.product_id,
        name=row.name,
        slug=row.slug,
        image=row.image,
        price=row.price,
        quantity=row.quantity,
    )


def _refresh_snapshot(line: CartItem, product: Product) -> None:
    line.name = product.title
    line.slug = product.slug
    line.price = product.price
    line.image = product.primary_image or line.image


class CartService(BaseService):
    """
    Per-user cart. Quantities are clamped to ``1..max_line_quantity`` and
    checked against the product stock on every change.
    """

    def __init__(self, *, max_line_quantity: int = 99, ctx: ServiceContext | None = None) -> None:
        super().__init__(ctx=ctx)
        self.max_line_quantity = max_line_quantity

    def clamp(self, quantity) -> int:
        try:
            value = int(quantity)
        except (TypeError, ValueError):
            return 1
        return min(max(value, 1), self.max_line_quantity)

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def count(self, user_id: int) -> int:
        with self.ro_uow() as uow:
            cart = uow.carts.get_for_user(user_id)
            return cart.total_items if cart is not None else 0

    def get(self, user_id: int) -> CartOut:
        """Return the caller's cart, creating it on first use."""
        with self.rw_uow() as uow:
            repo: CartRepository = uow.carts
            cart = repo.get_or_create(user_id)
            return CartOut(
                id=cart.id,
                count=cart.total_items,
                items=[line_to_out(item) for item in cart.items],
            )

    # ------------------------------------------------------------------ #
    # Mutations
    # ------------------------------------------------------------------ #

    def add(self, user_id: int, product_id, quantity=1) -> CartChangeOut:
        """
        Add units of a product, merging with an existing line.

        :raises NotFoundError: Unknown or withdrawn product.
        :raises ValidationError: Out of stock or not enough stock.
        """
        pid = self._require_product_id(product_id)
        qty = self.clamp(quantity)

        with self.rw_uow() as uow:
            product = uow.products.get(pid)
            if product is None or not product.is_purchasable:
                raise NotFoundError("Product", pid, "Product not found")
            if not product.in_stock:
                raise ValidationError("Out of stock")

            repo: CartRepository = uow.carts
            cart = repo.get_or_create(user_id)
            line = cart.line_for(pid)
            next_qty = self.clamp((line.quantity if line is not None else 0) + qty)
            self._ensure_stock(product, next_qty)

            if line is None:
                line = CartItem(product_id=pid, quantity=next_qty)
                _refresh_snapshot(line, product)
                repo.add_line(cart, line)
            else:
                line.quantity = next_qty
                _refresh_snapshot(line, product)
                repo.flush()

            logger.info("cart.line_added", extra={"user_id": user_id, "product_id": pid})
            return CartChangeOut(count=cart.total_items, line=line_to_out(line))

    def update_quantity(self, user_id: int, product_id, quantity) -> CartChangeOut:
        """
        Set a line's quantity; zero or less removes the line.

        :raises NotFoundError: Line not in the cart.
        :raises ValidationError: Product unavailable or not enough stock.
        """
        pid = self._require_product_id(product_id)
        try:
            requested = int(quantity)
        except (TypeError, ValueError) as exc:
            raise ValidationError("quantity must be a number") from exc

        with self.rw_uow() as uow:
            repo: CartRepository = uow.carts
            cart = repo.get_or_create(user_id)
            line = cart.line_for(pid)
            if line is None:
                raise NotFoundError("CartItem", pid, "Item not in cart")

            if requested <= 0:
                repo.remove_line(cart, line)
                return CartChangeOut(count=cart.total_items)

            product = uow.products.get(pid)
            if product is None or not product.is_purchasable or not product.in_stock:
                raise ValidationError("Item unavailable")
            next_qty = self.clamp(requested)
            self._ensure_stock(product, next_qty)

            line.quantity = next_qty
            _refresh_snapshot(line, product)
            repo.flush()
            return CartChangeOut(count=cart.total_items, line=line_to_out(line))

    def remove(self, user_id: int, product_id) -> CartChangeOut:
        """
        :raises NotFoundError: No cart, or the product is not in it.
        """
        pid = self._require_product_id(product_id)
        with self.rw_uow() as uow:
            repo: CartRepository = uow.carts
            cart: Cart | None = repo.get_for_user(user_id)
            if cart is None:
                raise NotFoundError("Cart", user_id, "Cart not found")
            line = cart.line_for(pid)
            if line is None:
                raise NotFoundError("CartItem", pid, "Item not found in cart")
            repo.remove_line(cart, line)
            return CartChangeOut(count=cart.total_items)

    # ------------------------------------------------------------------ #

    @staticmethod
    def _require_product_id(product_id) -> int:
        pid = coerce_id(product_id)
        if pid is None:
            raise ValidationError("productId required")
        return pid

    @staticmethod
    def _ensure_stock(product: Product, quantity: int) -> None:
        stock = int(product.stock or 0)
        if quantity > stock:
            raise ValidationError(f"Only {stock} left in stock")
