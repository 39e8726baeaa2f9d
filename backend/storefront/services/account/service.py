"""
AccountService
==============

Process-level service for the account lifecycle:

- Registration with an emailed one-time code.
- Login (unverified accounts get a fresh code instead of a session).
- OTP-gated email verification, scoped by a short-lived verify token.
- Forgot/reset password; a reset bumps ``token_version`` so every existing
  session dies.

Mails are queued only after the transaction that stored the code committed.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy.exc import IntegrityError

from storefront.core import security
from storefront.models.base import utcnow
from storefront.models.user import EMAIL_VERIFY, PASSWORD_RESET, User
from storefront.repositories.user import UserRepository
from storefront.services._shared.base import BaseService, ServiceContext
from storefront.services._shared.errors import (
    AuthenticationError,
    ConflictError,
    ValidationError,
    violates,
)
from storefront.services._shared.ports.mail_queue import MailMessage, MailQueue
from storefront.services._shared.ports.token_provider import TokenError
from storefront.services.account.dto import (
    LoginIn,
    LoginOut,
    RegisterIn,
    RegisterOut,
    ResetPasswordIn,
    VerifyEmailIn,
)
from storefront.services.auth.dto import SessionOut
from storefront.services.auth.service import AuthService, identity_of

log = logging.getLogger(__name__)

VERIFY_TEMPLATE = "verify-email"
RESET_TEMPLATE = "password-reset"

# Messages per OTP purpose: (missing, expired, too many attempts)
_OTP_MESSAGES = {
    EMAIL_VERIFY: (
        "No OTP found. Resend code.",
        "OTP expired. Resend code.",
        "Too many attempts. Resend code.",
    ),
    PASSWORD_RESET: (
        "No reset OTP found. Request again.",
        "Reset OTP expired. Request again.",
        "Too many attempts. Request again.",
    ),
}


class AccountService(BaseService):
    """
    Orchestrates registration, verification and password recovery.
    """

    def __init__(
        self,
        *,
        auth: AuthService,
        mail_queue: MailQueue,
        otp_ttl: timedelta = timedelta(minutes=10),
        otp_max_attempts: int = 5,
        ctx: ServiceContext | None = None,
    ) -> None:
        super().__init__(ctx=ctx)
        self.auth = auth
        self.tokens = auth.tokens
        self.mail = mail_queue
        self.otp_ttl = otp_ttl
        self.otp_max_attempts = otp_max_attempts

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn) -> RegisterOut:
        """
        Create an unverified user and mail a verification code.

        :raises ConflictError: Email already registered.
        """
        norm_email = dto.email.lower().strip()
        try:
            with self.rw_uow() as uow:
                repo: UserRepository = uow.users
                if repo.exists_by_email(norm_email):
                    raise ConflictError("User", "Email already in use")
                user = User(name=dto.name, email=norm_email, password=dto.password)
                repo.add(user)
                code = self._issue_otp(repo, user, EMAIL_VERIFY)
                user_id, name = user.id, user.name
        except IntegrityError as exc:
            # Concurrent registration with the same email
            if violates(exc, "uq_users_email") or violates(exc, "users.email"):
                raise ConflictError("User", "Email already in use") from exc
            raise

        self._queue_otp_mail(norm_email, name, code, VERIFY_TEMPLATE)
        log.info("account.registered", extra={"user_id": user_id})
        return RegisterOut(user_id=user_id, verify_token=self.tokens.issue_verify_token(user_id=user_id))

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> LoginOut:
        """
        Check credentials; verified users get a token pair, others a new code.

        :raises AuthenticationError: Unknown email or wrong password.
        """
        with self.rw_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.authenticate(dto.email, dto.password)
            if user is None:
                raise AuthenticationError("Invalid credentials")

            identity = identity_of(user)
            if user.email_verified:
                return LoginOut(identity=identity, tokens=self.auth.issue_tokens(identity))

            code = self._issue_otp(repo, user, EMAIL_VERIFY)

        self._queue_otp_mail(identity.email, identity.name, code, VERIFY_TEMPLATE)
        return LoginOut(
            identity=identity,
            verify_token=self.tokens.issue_verify_token(user_id=identity.user_id),
        )

    # ------------------------------------------------------------------ #
    # Email verification
    # ------------------------------------------------------------------ #

    def verify_email(self, dto: VerifyEmailIn) -> SessionOut:
        """
        Confirm the emailed code and open a session.

        :raises AuthenticationError: Missing/invalid verify token.
        :raises ValidationError: Missing, expired, exhausted or wrong code.
        """
        user_id = self._verify_token_subject(dto.verify_token)
        otp = (dto.otp or "").strip()

        with self.rw_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get(user_id)
            if user is None:
                raise AuthenticationError("Verification session expired. Please login again.")
            if user.email_verified:
                return self.auth.issue_session(user)

            if not otp:
                raise ValidationError("OTP is required")
            self._check_otp(uow, repo, user, EMAIL_VERIFY, otp)

            repo.mark_verified(user)
            repo.clear_otp(user, EMAIL_VERIFY)
            session = self.auth.issue_session(user)

        log.info("account.email_verified", extra={"user_id": user_id})
        return session

    def resend_verification(self, verify_token: str | None) -> bool:
        """
        Mail a new verification code.

        :returns: ``False`` when the account is already verified.
        :raises AuthenticationError: Missing/invalid verify token.
        """
        user_id = self._verify_token_subject(verify_token)
        with self.rw_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get(user_id)
            if user is None:
                raise AuthenticationError("Verification session expired. Please login again.")
            if user.email_verified:
                return False
            code = self._issue_otp(repo, user, EMAIL_VERIFY)
            email, name = user.email, user.name

        self._queue_otp_mail(email, name, code, VERIFY_TEMPLATE)
        return True

    # ------------------------------------------------------------------ #
    # Password reset
    # ------------------------------------------------------------------ #

    def forgot_password(self, email: str) -> None:
        """
        Mail a reset code when the account exists.

        The outcome is never revealed to the caller.
        """
        with self.rw_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get_by_email(email)
            if user is None:
                log.info("account.reset_unknown_email")
                return
            code = self._issue_otp(repo, user, PASSWORD_RESET)
            norm_email, name = user.email, user.name

        self._queue_otp_mail(norm_email, name, code, RESET_TEMPLATE)

    def reset_password(self, dto: ResetPasswordIn) -> None:
        """
        Set a new password with a valid reset code and end every session.

        :raises ValidationError: Unknown account or bad code.
        """
        otp = (dto.otp or "").strip()
        if not otp:
            raise ValidationError("OTP is required")

        with self.rw_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get_by_email(dto.email)
            if user is None:
                raise ValidationError("Invalid reset request")
            self._check_otp(uow, repo, user, PASSWORD_RESET, otp)

            repo.update_password(user, dto.password)
            repo.clear_otp(user, PASSWORD_RESET)
            user_id = user.id
            repo.bump_token_version(user_id)

        log.info("account.password_reset", extra={"user_id": user_id})

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _verify_token_subject(self, token: str | None) -> int:
        if not token:
            raise AuthenticationError("Verification session expired. Please login again.")
        try:
            return self.tokens.verify_verify_token(token).user_id
        except TokenError as exc:
            raise AuthenticationError("Verification session expired. Please login again.") from exc

    def _issue_otp(self, repo: UserRepository, user: User, purpose: str) -> str:
        code = security.generate_otp()
        repo.set_otp(
            user,
            purpose=purpose,
            code_hash=security.hash_otp(code),
            expires_at=utcnow() + self.otp_ttl,
        )
        return code

    def _check_otp(self, uow, repo: UserRepository, user: User, purpose: str, code: str) -> None:
        """
        Apply the OTP gates in order. A wrong code increments the attempt
        counter, which is committed before the error propagates.
        """
        missing, expired, exhausted = _OTP_MESSAGES[purpose]
        record = user.otp_for(purpose)
        if record is None:
            raise ValidationError(missing)
        if record.is_expired():
            raise ValidationError(expired)
        if (record.attempts or 0) >= self.otp_max_attempts:
            raise ValidationError(exhausted)
        if not security.verify_otp(code, record.code_hash):
            repo.register_failed_attempt(record)
            uow.commit()
            raise ValidationError("Invalid OTP")

    def _queue_otp_mail(self, to: str, name: str, code: str, template: str) -> None:
        subject = "Verify your email" if template == VERIFY_TEMPLATE else "Reset your password"
        message = MailMessage(
            to=to,
            subject=subject,
            template=template,
            data={
                "name": name,
                "otp": code,
                "ttl_minutes": int(self.otp_ttl.total_seconds() // 60),
            },
        )
        try:
            self.mail.enqueue(message)
        except Exception:
            # The code is stored; the user can ask for a resend.
            log.exception("account.mail_enqueue_failed", extra={"template": template})
