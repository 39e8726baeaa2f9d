"""User identity and one-time-code records."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from storefront.core import security
from storefront.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin, as_utc, utcnow

if TYPE_CHECKING:
    from .address import Address

EMAIL_VERIFY = "EMAIL_VERIFY"
PASSWORD_RESET = "PASSWORD_RESET"
OtpPurpose = Enum(EMAIL_VERIFY, PASSWORD_RESET, name="otp_purpose")


class User(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Authentication identity of a shopper.

    Fields
    ------
    email : str
        Login email. Stored normalized (lowercase, trimmed).
    name : str
        Display name used in mails and payment prefill.
    password_hash : str
        Hashed password (write-only setter via ``password``).
    email_verified : bool
        Set once the emailed OTP has been confirmed.
    token_version : int
        Monotonic counter embedded in every token as ``tv``; bumping it
        invalidates all outstanding access and refresh tokens.
    phone : str | None
        Optional contact number used in payment prefill.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(254), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    email_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    token_version: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        Index("ix_users_email", "email"),
    )

    otps: Mapped[list[UserOtp]] = relationship(
        "UserOtp",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )
    addresses: Mapped[list[Address]] = relationship(
        "Address", back_populates="user", passive_deletes=True, lazy="noload"
    )

    @property
    def password(self) -> Any:  # pragma: no cover
        raise AttributeError("Password is write-only.")

    @password.setter
    def password(self, raw: str) -> None:
        self.password_hash = security.hash_password(raw)

    def verify_password(self, raw: str) -> bool:
        return security.verify_password(raw, self.password_hash)

    def otp_for(self, purpose: str) -> UserOtp | None:
        """Return the outstanding code for ``purpose`` if any."""
        return next((otp for otp in self.otps if otp.purpose == purpose), None)

    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = value.strip().lower()
        # Schemas do the strict check
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v

    @validates("name")
    def _normalize_name(self, key: str, value: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Name is required.")
        return value.strip()


class UserOtp(PKMixin, TimestampMixin, db.Model):
    """
    Hashed one-time code for a single purpose (email verification or reset).

    At most one row per ``(user_id, purpose)``; reissuing a code overwrites
    the hash, expiry and attempt counter.
    """

    __tablename__ = "user_otps"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    purpose: Mapped[str] = mapped_column(OtpPurpose, nullable=False)
    code_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    __table_args__ = (UniqueConstraint("user_id", "purpose", name="uq_user_otps_user_purpose"),)

    user: Mapped[User] = relationship("User", back_populates="otps")

    def is_expired(self, now: datetime | None = None) -> bool:
        expires_at = as_utc(self.expires_at)
        return expires_at is None or (now or utcnow()) > expires_at
