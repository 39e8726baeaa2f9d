# storefront/infra/jwt/jwt_token_provider.py
from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from storefront.services._shared.ports.token_provider import (
    ACCESS,
    REFRESH,
    VERIFY,
    ExpiredTokenError,
    InvalidTokenError,
    TokenClaims,
    TokenProvider,
)


@dataclass(slots=True)
class JWTTokenProvider(TokenProvider):
    """
    PyJWT adapter issuing HS256 tokens with a ``typ`` discriminator.

    Every token type is signed with its own key so a token of one type can
    never verify as another. The verify-email key falls back to the refresh
    key when no dedicated secret is configured.

    :param access_secret: Signing key for access tokens.
    :param refresh_secret: Signing key for refresh tokens.
    :param verify_secret: Optional dedicated key for verify-email tokens.
    :param access_ttl: Access token lifetime.
    :param refresh_ttl: Refresh token lifetime.
    :param verify_ttl: Verify-email token lifetime.
    """

    access_secret: str
    refresh_secret: str
    verify_secret: str | None = None
    access_ttl: timedelta = timedelta(minutes=15)
    refresh_ttl: timedelta = timedelta(days=7)
    verify_ttl: timedelta = timedelta(minutes=15)
    algorithm: str = "HS256"

    # -------------------- keys --------------------

    def _key_for(self, token_type: str) -> str:
        if token_type == ACCESS:
            return self.access_secret
        if token_type == REFRESH:
            return self.refresh_secret
        return self.verify_secret or self.refresh_secret

    def _ttl_for(self, token_type: str) -> timedelta:
        return {ACCESS: self.access_ttl, REFRESH: self.refresh_ttl}.get(
            token_type, self.verify_ttl
        )

    # -------------------- issue --------------------

    def new_jti(self) -> str:
        return secrets.token_hex(16)

    def _encode(self, token_type: str, user_id: int, claims: dict[str, Any]) -> str:
        now = datetime.now(UTC)
        payload: dict[str, Any] = {
            "sub": str(user_id),
            "typ": token_type,
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttl_for(token_type)).timestamp()),
        }
        payload.update(claims)
        return jwt.encode(payload, self._key_for(token_type), algorithm=self.algorithm)

    def issue_access_token(self, *, user_id: int, email: str, token_version: int) -> str:
        return self._encode(
            ACCESS,
            user_id,
            {"email": email, "tv": int(token_version), "jti": self.new_jti()},
        )

    def issue_refresh_token(self, *, user_id: int, jti: str, token_version: int) -> str:
        return self._encode(REFRESH, user_id, {"jti": jti, "tv": int(token_version)})

    def issue_verify_token(self, *, user_id: int) -> str:
        return self._encode(VERIFY, user_id, {})

    # -------------------- verify --------------------

    def _decode(self, token: str, expected_type: str) -> TokenClaims:
        if not token or not isinstance(token, str):
            raise InvalidTokenError("Token missing.")
        try:
            payload = jwt.decode(
                token,
                self._key_for(expected_type),
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub", "typ"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise ExpiredTokenError("Token expired.") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidTokenError("Token invalid.") from exc

        if payload.get("typ") != expected_type:
            raise InvalidTokenError("Invalid token type.")

        tv = payload.get("tv")
        return TokenClaims(
            subject=str(payload["sub"]),
            token_type=expected_type,
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=UTC),
            token_version=int(tv) if tv is not None else None,
            jti=payload.get("jti"),
            email=payload.get("email"),
        )

    def verify_access_token(self, token: str) -> TokenClaims:
        return self._decode(token, ACCESS)

    def verify_refresh_token(self, token: str) -> TokenClaims:
        claims = self._decode(token, REFRESH)
        if not claims.jti:
            raise InvalidTokenError("Refresh token without jti.")
        return claims

    def verify_verify_token(self, token: str) -> TokenClaims:
        return self._decode(token, VERIFY)
