"""
DTOs for AccountService.

Contracts for registration, login, OTP-gated email verification and the
password reset flow.
"""

from __future__ import annotations

from dataclasses import dataclass

from storefront.services.auth.dto import Identity, TokenPairOut

# --------------------------------------------------------------------------- #
# Input
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input payload for registration.

    :param name: Display name.
    :type name: str
    :param email: Login email (normalized by the model).
    :type email: str
    :param password: Raw password (the model setter hashes it).
    :type password: str
    """

    name: str
    email: str
    password: str


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: User email.
    :type email: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    email: str
    password: str


@dataclass(frozen=True, slots=True)
class VerifyEmailIn:
    """
    Input DTO for OTP email verification.

    :param verify_token: Token from the ``verify_token`` cookie.
    :type verify_token: str | None
    :param otp: Six-digit code typed by the user.
    :type otp: str | None
    """

    verify_token: str | None
    otp: str | None


@dataclass(frozen=True, slots=True)
class ResetPasswordIn:
    """
    Input DTO for completing a password reset.

    :param email: Account email.
    :type email: str
    :param otp: Code received by mail.
    :type otp: str
    :param password: New raw password.
    :type password: str
    """

    email: str
    otp: str
    password: str


# --------------------------------------------------------------------------- #
# Output
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class RegisterOut:
    """
    Result of a registration.

    :param user_id: Created user id.
    :type user_id: int
    :param verify_token: Short-lived token scoping the OTP verification flow.
    :type verify_token: str
    """

    user_id: int
    verify_token: str


@dataclass(frozen=True, slots=True)
class LoginOut:
    """
    Result of a login attempt with valid credentials.

    Exactly one of ``tokens`` (verified account) or ``verify_token``
    (verification still pending) is set.
    """

    identity: Identity
    tokens: TokenPairOut | None = None
    verify_token: str | None = None

    @property
    def requires_verification(self) -> bool:
        return self.tokens is None
