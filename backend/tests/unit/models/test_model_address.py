"""Tests for the Address model and its one-default-per-user index."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError

from tests.factories.address import AddressFactory
from tests.factories.user import UserFactory


class TestAddress:
    def test_required_text_is_validated(self):
        with pytest.raises(ValueError, match="city"):
            AddressFactory.build(city="   ")

    def test_snapshot_contains_reference_and_fields(self, session):
        address = AddressFactory(full_name="Asha Rao", city="Pune")
        snap = address.snapshot()
        assert snap["address_ref_id"] == address.id
        assert snap["full_name"] == "Asha Rao"
        assert snap["city"] == "Pune"
        assert "user_id" not in snap

    def test_only_one_active_default_per_user(self, session):
        user = UserFactory()
        AddressFactory(user=user, is_default=True)
        with pytest.raises(IntegrityError):
            AddressFactory(user=user, is_default=True)
        session.rollback()

    def test_inactive_default_does_not_count(self, session):
        user = UserFactory()
        AddressFactory(user=user, is_default=True, is_active=False)
        # Soft-deleted rows are outside the partial index
        AddressFactory(user=user, is_default=True)

    def test_defaults_of_different_users_coexist(self, session):
        AddressFactory(is_default=True)
        AddressFactory(is_default=True)
