"""Shopping cart with price-snapshotted lines."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin

if TYPE_CHECKING:
    from .product import Product


class Cart(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """One cart per user, created on demand."""

    __tablename__ = "carts"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (UniqueConstraint("user_id", name="uq_carts_user_id"),)

    items: Mapped[list[CartItem]] = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="CartItem.id",
    )

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    def line_for(self, product_id: int) -> CartItem | None:
        return next((item for item in self.items if item.product_id == product_id), None)


class CartItem(PKMixin, TimestampMixin, db.Model):
    """
    Cart line. ``price``/``name`` are display snapshots only; checkout always
    re-reads the product row.
    """

    __tablename__ = "cart_items"

    cart_id: Mapped[int] = mapped_column(
        ForeignKey("carts.id", ondelete="CASCADE"), nullable=False
    )
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str | None] = mapped_column(String(220))
    image: Mapped[str | None] = mapped_column(String(500))
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", name="uq_cart_items_cart_product"),
    )

    cart: Mapped[Cart] = relationship("Cart", back_populates="items")
    product: Mapped[Product | None] = relationship("Product", lazy="selectin")
