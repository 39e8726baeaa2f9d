"""User repository for identity lookup, OTP records and token versioning."""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import select, update

from storefront.models.user import User, UserOtp
from storefront.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Shopper accounts, their one-time codes and the ``token_version`` counter."""

    model = User

    def _sortable_fields(self):
        return {"id": User.id, "email": User.email, "created_at": User.created_at}

    def _filterable_fields(self):
        return {"email": User.email, "email_verified": User.email_verified}

    def _updatable_fields(self):
        """Profile fields only; password and verification have dedicated methods."""
        return {"name", "phone"}

    def get_by_email(self, email: str) -> User | None:
        # Emails are stored lowercased
        stmt = select(User).where(User.email == email.lower().strip())
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def exists_by_email(self, email: str) -> bool:
        stmt = select(User.id).where(User.email == email.lower().strip())
        return self.session.execute(stmt).first() is not None

    def authenticate(self, email: str, password: str) -> User | None:
        """Return the user when ``email``/``password`` match, else ``None``."""
        user = self.get_by_email(email)
        if not user or not user.verify_password(password):
            return None
        return user

    def update_password(self, user: User, new_password: str) -> None:
        """Hash and store ``new_password`` on ``user`` and flush."""
        user.password = new_password
        self.flush()

    def mark_verified(self, user: User) -> None:
        user.email_verified = True
        self.flush()

    def set_otp(self, user: User, *, purpose: str, code_hash: str, expires_at: datetime) -> UserOtp:
        """Create or overwrite the code for ``purpose`` and reset its attempts.

        :param user: Owner of the code.
        :type user: User
        :param purpose: ``EMAIL_VERIFY`` or ``PASSWORD_RESET``.
        :type purpose: str
        :param code_hash: Hashed one-time code.
        :type code_hash: str
        :param expires_at: Absolute expiry.
        :type expires_at: datetime
        :returns: The stored OTP row.
        :rtype: UserOtp
        """
        otp = user.otp_for(purpose)
        if otp is None:
            otp = UserOtp(purpose=purpose, code_hash=code_hash, expires_at=expires_at, attempts=0)
            user.otps.append(otp)
        else:
            otp.code_hash = code_hash
            otp.expires_at = expires_at
            otp.attempts = 0
        self.flush()
        return otp

    def register_failed_attempt(self, otp: UserOtp) -> int:
        otp.attempts = (otp.attempts or 0) + 1
        self.flush()
        return otp.attempts

    def clear_otp(self, user: User, purpose: str) -> None:
        otp = user.otp_for(purpose)
        if otp is not None:
            user.otps.remove(otp)
            self.flush()

    def get_token_version(self, user_id: int) -> int:
        """Return current ``token_version`` for the given user."""
        stmt = select(User.token_version).where(User.id == user_id)
        return int(self.session.execute(stmt).scalar_one())

    def bump_token_version(self, user_id: int) -> int:
        """Increment ``token_version`` in one UPDATE and return the new value."""
        self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(token_version=User.token_version + 1)
            .execution_options(synchronize_session=False)
        )
        user = self.session.get(User, user_id)
        if user is not None:
            self.session.refresh(user, attribute_names=["token_version"])
        return self.get_token_version(user_id)
