"""
AddressService
==============

Address book with at most one active default per user:

- the first address saved becomes the default;
- asking for a second default on create is a conflict;
- deleting the default promotes the newest remaining address;
- set-default unsets the previous default in the same transaction.

The partial unique index ``uq_addresses_user_default`` backs all of this
when requests race.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from storefront.models.address import Address
from storefront.repositories.address import AddressRepository
from storefront.services._shared.base import BaseService, ServiceContext
from storefront.services._shared.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    violates,
)
from storefront.services._shared.policies.common import coerce_id, sanitize_text

from .dto import AddressCreateIn, AddressOut, AddressPatch

logger = logging.getLogger(__name__)

DEFAULT_CONFLICT = "A default address already exists. Set another address as default instead."


def address_to_out(row: Address) -> AddressOut:
    return AddressOut(
        id=row.id,
        label=row.label,
        full_name=row.full_name,
        phone=row.phone,
        alternate_phone=row.alternate_phone,
        line1=row.line1,
        line2=row.line2,
        landmark=row.landmark,
        city=row.city,
        state=row.state,
        country=row.country,
        postal_code=row.postal_code,
        is_default=bool(row.is_default),
        created_at=row.created_at,
    )


def _clean(value: str | None, limit: int) -> str | None:
    if value is None:
        return None
    return sanitize_text(value, limit) or None


_FIELD_LIMITS = {
    "label": 30,
    "full_name": 100,
    "phone": 20,
    "alternate_phone": 20,
    "line1": 200,
    "line2": 200,
    "landmark": 120,
    "city": 80,
    "state": 80,
    "postal_code": 12,
}


class AddressService(BaseService):
    """Manage the caller's saved addresses."""

    def __init__(
        self,
        *,
        max_addresses: int = 5,
        country: str = "India",
        ctx: ServiceContext | None = None,
    ) -> None:
        super().__init__(ctx=ctx)
        self.max_addresses = max_addresses
        self.country = country

    def list(self, user_id: int) -> list[AddressOut]:
        """Active addresses, default first then newest."""
        with self.ro_uow() as uow:
            repo: AddressRepository = uow.addresses
            return [address_to_out(row) for row in repo.list_active(user_id)]

    def create(self, user_id: int, dto: AddressCreateIn) -> AddressOut:
        """
        Save a new address.

        :raises ValidationError: Limit reached or a required field is blank.
        :raises ConflictError: A default already exists and another was asked for.
        """
        values = {key: _clean(getattr(dto, key), limit) for key, limit in _FIELD_LIMITS.items()}
        values["label"] = values["label"] or "Home"

        try:
            with self.rw_uow() as uow:
                repo: AddressRepository = uow.addresses
                active = repo.count_active(user_id)
                if active >= self.max_addresses:
                    raise ValidationError(
                        f"You can only store up to {self.max_addresses} active addresses."
                    )
                if active == 0:
                    is_default = True
                elif dto.is_default:
                    if repo.get_default(user_id) is not None:
                        raise ConflictError("Address", DEFAULT_CONFLICT)
                    is_default = True
                else:
                    is_default = False

                try:
                    address = Address(
                        user_id=user_id,
                        country=self.country,
                        is_default=is_default,
                        is_active=True,
                        **values,
                    )
                except ValueError as exc:
                    raise ValidationError(str(exc)) from exc
                repo.add(address)
                logger.info("address.created", extra={"user_id": user_id, "address_id": address.id})
                return address_to_out(address)
        except IntegrityError as exc:
            if violates(exc, "uq_addresses_user_default") or violates(exc, "addresses.user_id"):
                raise ConflictError("Address", DEFAULT_CONFLICT) from exc
            raise

    def update(self, user_id: int, address_id, patch: AddressPatch) -> AddressOut:
        """
        Apply an allow-listed patch to an owned, active address.

        :raises NotFoundError: Unknown or foreign address.
        :raises ValidationError: A required field was blanked.
        """
        pk = self._require_id(address_id)
        changes = {key: _clean(value, _FIELD_LIMITS[key]) for key, value in patch.changes.items()}
        if "label" in changes and not changes["label"]:
            changes["label"] = "Home"

        with self.rw_uow() as uow:
            repo: AddressRepository = uow.addresses
            address = repo.get_owned(pk, user_id)
            if address is None:
                raise NotFoundError("Address", pk, "Address not found.")
            if changes:
                try:
                    repo.assign_updates(address, changes)
                except ValueError as exc:
                    raise ValidationError(str(exc)) from exc
            return address_to_out(address)

    def delete(self, user_id: int, address_id) -> None:
        """
        Soft-delete an address; a deleted default hands over to the newest
        remaining one.

        :raises NotFoundError: Unknown or foreign address.
        """
        pk = self._require_id(address_id)
        with self.rw_uow() as uow:
            repo: AddressRepository = uow.addresses
            address = repo.get_owned(pk, user_id)
            if address is None:
                raise NotFoundError("Address", pk, "Address not found.")

            was_default = bool(address.is_default)
            repo.delete(address)
            repo.flush()

            if was_default:
                newest = repo.newest_active(user_id, exclude_id=pk)
                if newest is not None:
                    newest.is_default = True
                    repo.flush()
                    logger.info(
                        "address.default_promoted",
                        extra={"user_id": user_id, "address_id": newest.id},
                    )

    def set_default(self, user_id: int, address_id) -> AddressOut:
        """
        Make ``address_id`` the default.

        :raises NotFoundError: Unknown or foreign address.
        """
        pk = self._require_id(address_id)
        try:
            with self.rw_uow() as uow:
                repo: AddressRepository = uow.addresses
                address = repo.get_owned(pk, user_id)
                if address is None:
                    raise NotFoundError("Address", pk, "Address not found.")
                if not address.is_default:
                    repo.unset_default(user_id)
                    address.is_default = True
                    repo.flush()
                return address_to_out(address)
        except IntegrityError as exc:
            if violates(exc, "uq_addresses_user_default") or violates(exc, "addresses.user_id"):
                raise ConflictError("Address", DEFAULT_CONFLICT) from exc
            raise

    @staticmethod
    def _require_id(address_id) -> int:
        pk = coerce_id(address_id)
        if pk is None:
            raise ValidationError("Invalid addressId.")
        return pk
