from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

ACCESS = "access"
REFRESH = "refresh"
VERIFY = "verify"


class TokenError(Exception):
    """Base class for token decoding failures."""


class InvalidTokenError(TokenError):
    """Signature, structure or ``typ`` discriminator is wrong."""


class ExpiredTokenError(TokenError):
    """The token was well-formed but its ``exp`` has passed."""


@dataclass(frozen=True, slots=True)
class TokenClaims:
    """
    Decoded, verified token payload.

    :param subject: ``sub`` claim (stringified user id).
    :type subject: str
    :param token_type: ``typ`` discriminator (``access``/``refresh``/``verify``).
    :type token_type: str
    :param expires_at: Natural expiry of the token.
    :type expires_at: datetime
    :param token_version: ``tv`` snapshot of the user's token version.
    :type token_version: int | None
    :param jti: Unique token id (always present on refresh tokens).
    :type jti: str | None
    :param email: Email claim carried by access tokens.
    :type email: str | None
    """

    subject: str
    token_type: str
    expires_at: datetime
    token_version: int | None = None
    jti: str | None = None
    email: str | None = None

    @property
    def user_id(self) -> int:
        if not self.subject.isdigit():
            raise InvalidTokenError("Invalid token subject.")
        return int(self.subject)

    def remaining_seconds(self, now: datetime | None = None) -> int:
        """Seconds until natural expiry, never negative."""
        now = now or datetime.now(UTC)
        return max(0, int((self.expires_at - now).total_seconds()))


class TokenProvider(Protocol):
    """Port for issuing and verifying typed, signed tokens."""

    def new_jti(self) -> str: ...

    def issue_access_token(self, *, user_id: int, email: str, token_version: int) -> str: ...

    def issue_refresh_token(self, *, user_id: int, jti: str, token_version: int) -> str: ...

    def issue_verify_token(self, *, user_id: int) -> str: ...

    def verify_access_token(self, token: str) -> TokenClaims: ...

    def verify_refresh_token(self, token: str) -> TokenClaims: ...

    def verify_verify_token(self, token: str) -> TokenClaims: ...
