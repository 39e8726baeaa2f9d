"""Repository package exposing persistence-layer access for all domain models."""

from __future__ import annotations

from storefront.repositories.address import ADDRESS_PATCHABLE_FIELDS, AddressRepository
from storefront.repositories.base import BaseRepository, apply_sorting
from storefront.repositories.cart import CartRepository
from storefront.repositories.order import OrderRepository
from storefront.repositories.product import ProductRepository
from storefront.repositories.user import UserRepository

__all__ = [
    # Base
    "BaseRepository",
    "apply_sorting",
    # Domain
    "ADDRESS_PATCHABLE_FIELDS",
    "AddressRepository",
    "CartRepository",
    "OrderRepository",
    "ProductRepository",
    "UserRepository",
]
