"""Read access to catalog products."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select

from storefront.models.product import Product
from storefront.repositories.base import BaseRepository


class ProductRepository(BaseRepository[Product]):
    """Products are managed elsewhere; checkout and cart only read them."""

    model = Product

    def _filterable_fields(self):
        return {"slug": Product.slug, "is_active": Product.is_active}

    def get_many(self, product_ids: Iterable[int]) -> dict[int, Product]:
        """Load products by id in one round-trip, keyed by id."""
        ids = sorted({int(pid) for pid in product_ids})
        if not ids:
            return {}
        stmt = select(Product).where(Product.id.in_(ids))
        return {p.id: p for p in self.session.execute(stmt).scalars().all()}
