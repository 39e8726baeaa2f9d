"""Catalog product (read side only; catalog management lives elsewhere)."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import JSON, Boolean, Integer, Numeric, String, UniqueConstraint, false, true
from sqlalchemy.orm import Mapped, mapped_column

from storefront.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin


class Product(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Sellable product. ``price`` is the authoritative unit price used at checkout.
    """

    __tablename__ = "products"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(220), nullable=False)
    brand: Mapped[str | None] = mapped_column(String(100))
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    in_stock: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )
    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    __table_args__ = (UniqueConstraint("slug", name="uq_products_slug"),)

    @property
    def primary_image(self) -> str:
        return self.images[0] if self.images else ""

    @property
    def is_purchasable(self) -> bool:
        return self.is_active and not self.is_deleted
