"""Factory Boy definitions for carts and their lines."""

from __future__ import annotations

import factory
from storefront.models.cart import Cart, CartItem

from tests.factories import BaseFactory
from tests.factories.product import ProductFactory
from tests.factories.user import UserFactory


class CartFactory(BaseFactory):
    class Meta:
        model = Cart

    id = None
    user_id = factory.LazyFunction(lambda: UserFactory().id)


class CartItemFactory(BaseFactory):
    """Cart line whose snapshot mirrors the product at creation time."""

    class Meta:
        model = CartItem

    id = None
    cart = factory.SubFactory(CartFactory)
    product = factory.SubFactory(ProductFactory)
    product_id = factory.SelfAttribute("product.id")
    name = factory.SelfAttribute("product.title")
    slug = factory.SelfAttribute("product.slug")
    image = factory.LazyAttribute(lambda o: o.product.primary_image or None)
    price = factory.SelfAttribute("product.price")
    quantity = 1
