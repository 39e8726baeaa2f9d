"""User-owned shipping/billing addresses."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, ForeignKey, Index, String, false, text, true
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from storefront.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin

if TYPE_CHECKING:
    from .user import User

_ACTIVE_DEFAULT = text("is_default AND is_active")


class Address(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Address book entry.

    Soft-deleted through ``is_active``. A partial unique index guarantees at
    most one active default address per user.
    """

    __tablename__ = "addresses"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    label: Mapped[str] = mapped_column(String(30), nullable=False, default="Home")
    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    alternate_phone: Mapped[str | None] = mapped_column(String(20))
    line1: Mapped[str] = mapped_column(String(200), nullable=False)
    line2: Mapped[str | None] = mapped_column(String(200))
    landmark: Mapped[str | None] = mapped_column(String(120))
    city: Mapped[str] = mapped_column(String(80), nullable=False)
    state: Mapped[str] = mapped_column(String(80), nullable=False)
    country: Mapped[str] = mapped_column(String(60), nullable=False, default="India")
    postal_code: Mapped[str] = mapped_column(String(12), nullable=False)
    is_default: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )

    __table_args__ = (
        Index("ix_addresses_user_active", "user_id", "is_active"),
        Index(
            "uq_addresses_user_default",
            "user_id",
            unique=True,
            sqlite_where=_ACTIVE_DEFAULT,
            postgresql_where=_ACTIVE_DEFAULT,
        ),
    )

    user: Mapped[User] = relationship("User", back_populates="addresses")

    @validates("full_name", "phone", "line1", "city", "state", "postal_code")
    def _require_text(self, key: str, value: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"{key} is required.")
        return value.strip()

    def snapshot(self) -> dict[str, Any]:
        """Denormalized copy stored on orders (addresses may change later)."""
        return {
            "address_ref_id": self.id,
            "label": self.label,
            "full_name": self.full_name,
            "phone": self.phone,
            "alternate_phone": self.alternate_phone,
            "line1": self.line1,
            "line2": self.line2,
            "landmark": self.landmark,
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "postal_code": self.postal_code,
        }
