"""Address book persistence."""

from __future__ import annotations

from typing import cast

from sqlalchemy import func, select

from storefront.models.address import Address
from storefront.repositories.base import BaseRepository

# Fields a client may patch; ``is_default``/``is_active``/``country`` have
# dedicated operations.
ADDRESS_PATCHABLE_FIELDS: frozenset[str] = frozenset(
    {
        "label",
        "full_name",
        "phone",
        "alternate_phone",
        "line1",
        "line2",
        "landmark",
        "city",
        "state",
        "postal_code",
    }
)


class AddressRepository(BaseRepository[Address]):
    """Persistence for :class:`Address`, always scoped by owner."""

    model = Address

    def _sortable_fields(self):
        return {"created_at": Address.created_at, "label": Address.label}

    def _filterable_fields(self):
        return {
            "user_id": Address.user_id,
            "is_active": Address.is_active,
            "is_default": Address.is_default,
        }

    def _updatable_fields(self):
        return set(ADDRESS_PATCHABLE_FIELDS)

    def _soft_delete(self, instance: Address) -> bool:
        instance.is_active = False
        instance.is_default = False
        return True

    # ------------------------------------------------------------------ #

    def get_owned(self, address_id: int, user_id: int) -> Address | None:
        """Return the active address ``address_id`` if it belongs to ``user_id``."""
        stmt = select(Address).where(
            Address.id == address_id,
            Address.user_id == user_id,
            Address.is_active.is_(True),
        )
        return cast(Address | None, self.session.execute(stmt).scalars().first())

    def list_active(self, user_id: int) -> list[Address]:
        """Default first, then newest first."""
        stmt = (
            select(Address)
            .where(Address.user_id == user_id, Address.is_active.is_(True))
            .order_by(Address.is_default.desc(), Address.created_at.desc(), Address.id.desc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def count_active(self, user_id: int) -> int:
        stmt = select(func.count(Address.id)).where(
            Address.user_id == user_id, Address.is_active.is_(True)
        )
        return int(self.session.execute(stmt).scalar_one())

    def get_default(self, user_id: int) -> Address | None:
        stmt = select(Address).where(
            Address.user_id == user_id,
            Address.is_active.is_(True),
            Address.is_default.is_(True),
        )
        return cast(Address | None, self.session.execute(stmt).scalars().first())

    def newest_active(self, user_id: int, *, exclude_id: int | None = None) -> Address | None:
        stmt = select(Address).where(Address.user_id == user_id, Address.is_active.is_(True))
        if exclude_id is not None:
            stmt = stmt.where(Address.id != exclude_id)
        stmt = stmt.order_by(Address.created_at.desc(), Address.id.desc()).limit(1)
        return cast(Address | None, self.session.execute(stmt).scalars().first())

    def unset_default(self, user_id: int) -> None:
        """Clear the current default and flush before any new default is set."""
        current = self.get_default(user_id)
        if current is not None:
            current.is_default = False
            self.flush()
