"""
DTOs for AddressService.

Partial updates go through :class:`AddressPatch`, which only ever carries
fields from the repository allow-list.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any

from storefront.repositories.address import ADDRESS_PATCHABLE_FIELDS
from storefront.services._shared.errors import ValidationError


@dataclass(frozen=True, slots=True)
class AddressCreateIn:
    """
    Input payload to create an address.

    :param full_name: Recipient name.
    :type full_name: str
    :param phone: Contact number.
    :type phone: str
    :param line1: First address line.
    :type line1: str
    :param city: City.
    :type city: str
    :param state: State.
    :type state: str
    :param postal_code: Postal code.
    :type postal_code: str
    :param is_default: Ask for this address to become the default.
    :type is_default: bool
    """

    full_name: str
    phone: str
    line1: str
    city: str
    state: str
    postal_code: str
    label: str = "Home"
    alternate_phone: str | None = None
    line2: str | None = None
    landmark: str | None = None
    is_default: bool = False


@dataclass(frozen=True, slots=True)
class AddressPatch:
    """
    Explicit set of field changes for an existing address.

    Build it with :meth:`from_mapping`; keys outside the allow-list are
    rejected rather than silently dropped.
    """

    changes: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> AddressPatch:
        rejected = sorted(set(data) - ADDRESS_PATCHABLE_FIELDS)
        if rejected:
            raise ValidationError(f"Field not allowed: {', '.join(rejected)}")
        return cls(changes=MappingProxyType(dict(data)))

    def __bool__(self) -> bool:
        return bool(self.changes)


@dataclass(frozen=True, slots=True)
class AddressOut:
    id: int
    label: str
    full_name: str
    phone: str
    alternate_phone: str | None
    line1: str
    line2: str | None
    landmark: str | None
    city: str
    state: str
    country: str
    postal_code: str
    is_default: bool
    created_at: datetime | None
