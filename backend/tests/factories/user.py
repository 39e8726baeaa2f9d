"""Factory Boy definition for :class:`storefront.models.user.User`."""

from __future__ import annotations

from functools import cache

import factory
from storefront.core import security
from storefront.models.user import User

from tests.factories import BaseFactory

DEFAULT_PASSWORD = "Passw0rd!"


@cache
def _default_password_hash() -> str:
    # Hashing is slow on purpose; compute the shared default once.
    return security.hash_password(DEFAULT_PASSWORD)


class UserFactory(BaseFactory):
    """
    Build persisted :class:`storefront.models.user.User` instances.

    Notes
    -----
    - Users are verified by default; pass ``email_verified=False`` for the
      OTP flows.
    - Every user shares :data:`DEFAULT_PASSWORD` unless ``password=`` is given.
    """

    class Meta:
        model = User

    id = None  # let autoincrement handle it
    email = factory.Sequence(lambda n: f"user{n}@example.com")
    name = factory.Sequence(lambda n: f"Shopper {n}")
    email_verified = True
    token_version = 0
    password_hash = factory.LazyFunction(_default_password_hash)

    @factory.post_generation
    def password(obj, create, extracted, **kwargs):
        """Set password using model setter (ensures hashing)."""
        if extracted:
            obj.password = extracted
