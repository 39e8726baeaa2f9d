"""Password and one-time-code hashing primitives."""

from __future__ import annotations

import secrets
from typing import Final

from werkzeug.security import check_password_hash, generate_password_hash

# Passwords use werkzeug's adaptive default (scrypt). OTPs live for minutes,
# so a cheaper pbkdf2 round count is enough.
OTP_HASH_METHOD: Final[str] = "pbkdf2:sha256:60000"
OTP_LENGTH: Final[int] = 6


def hash_password(plain: str) -> str:
    """Return a salted, adaptive hash of ``plain``.

    :raises ValueError: If the password is empty or not a string.
    """
    if not isinstance(plain, str) or not plain:
        raise ValueError("Password must be a non-empty string.")
    return generate_password_hash(plain)


def verify_password(plain: str, hashed: str | None) -> bool:
    """Check ``plain`` against a stored hash; ``False`` when no hash is stored."""
    if not hashed or not isinstance(plain, str):
        return False
    return bool(check_password_hash(hashed, plain))


def generate_otp() -> str:
    """Return a six-digit numeric code (leading zeros allowed)."""
    return f"{secrets.randbelow(10**OTP_LENGTH):0{OTP_LENGTH}d}"


def hash_otp(code: str) -> str:
    return generate_password_hash(str(code), method=OTP_HASH_METHOD)


def verify_otp(code: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    return bool(check_password_hash(hashed, str(code).strip()))
