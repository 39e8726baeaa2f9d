"""Factory Boy definition for :class:`storefront.models.address.Address`."""

from __future__ import annotations

import factory
from storefront.models.address import Address

from tests.factories import BaseFactory
from tests.factories.user import UserFactory


class AddressFactory(BaseFactory):
    """Active, non-default address; pass ``is_default=True`` for at most one per user."""

    class Meta:
        model = Address

    id = None
    user = factory.SubFactory(UserFactory)
    label = "Home"
    full_name = factory.Faker("name")
    phone = factory.Sequence(lambda n: f"98{n:08d}")
    line1 = factory.Faker("street_address")
    city = "Bengaluru"
    state = "Karnataka"
    country = "India"
    postal_code = "560001"
    is_default = False
    is_active = True
