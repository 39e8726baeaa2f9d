"""Factory Boy definition for :class:`storefront.models.product.Product`."""

from __future__ import annotations

from decimal import Decimal

import factory
from storefront.models.product import Product

from tests.factories import BaseFactory


class ProductFactory(BaseFactory):
    class Meta:
        model = Product

    id = None
    title = factory.Sequence(lambda n: f"Cotton Kurta {n}")
    slug = factory.Sequence(lambda n: f"cotton-kurta-{n}")
    price = Decimal("100.00")
    stock = 10
    in_stock = True
    is_active = True
    is_deleted = False
    images = factory.LazyFunction(lambda: ["https://cdn.example.com/kurta.jpg"])
