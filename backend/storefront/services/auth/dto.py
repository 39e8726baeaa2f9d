# storefront/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# ---------------------------- Identity ------------------------------------ #


@dataclass(frozen=True, slots=True)
class Identity:
    """
    Authenticated principal attached to a request.

    :param user_id: User primary key.
    :type user_id: int
    :param email: Normalized email.
    :type email: str
    :param name: Display name.
    :type name: str
    :param email_verified: Whether the OTP verification has been completed.
    :type email_verified: bool
    :param token_version: Current ``token_version`` of the user.
    :type token_version: int
    """

    user_id: int
    email: str
    name: str
    email_verified: bool
    token_version: int


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenPairOut:
    """
    Output DTO with access and refresh tokens.

    :param access_token: Encoded access JWT.
    :type access_token: str
    :param refresh_token: Encoded refresh JWT.
    :type refresh_token: str
    """

    access_token: str
    refresh_token: str


class ResolutionState(Enum):
    """How a request's identity was established."""

    AUTHENTICATED = "authenticated"
    ROTATED = "rotated"
    UNAUTHENTICATED = "unauthenticated"


@dataclass(frozen=True, slots=True)
class AuthResolution:
    """
    Tagged result of resolving the caller from its cookies.

    ``tokens`` is only set for :attr:`ResolutionState.ROTATED`; the caller
    must hand the new pair back to the client.
    """

    state: ResolutionState
    identity: Identity | None = None
    tokens: TokenPairOut | None = None

    @classmethod
    def authenticated(cls, identity: Identity) -> AuthResolution:
        return cls(ResolutionState.AUTHENTICATED, identity)

    @classmethod
    def rotated(cls, identity: Identity, tokens: TokenPairOut) -> AuthResolution:
        return cls(ResolutionState.ROTATED, identity, tokens)

    @classmethod
    def unauthenticated(cls) -> AuthResolution:
        return cls(ResolutionState.UNAUTHENTICATED)

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None


@dataclass(frozen=True, slots=True)
class SessionOut:
    """
    Identity plus a freshly issued token pair.

    :param identity: The principal the tokens belong to.
    :type identity: Identity
    :param tokens: New access/refresh tokens.
    :type tokens: TokenPairOut
    """

    identity: Identity
    tokens: TokenPairOut
