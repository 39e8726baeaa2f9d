# storefront/services/auth/service.py
from __future__ import annotations

import logging

from storefront.models.user import User
from storefront.repositories.user import UserRepository
from storefront.services._shared.base import BaseService, ServiceContext
from storefront.services._shared.errors import AuthenticationError
from storefront.services._shared.ports.revocation_store import (
    RevocationStore,
    RevocationStoreError,
)
from storefront.services._shared.ports.token_provider import (
    TokenClaims,
    TokenError,
    TokenProvider,
)
from storefront.services.auth.dto import (
    AuthResolution,
    Identity,
    SessionOut,
    TokenPairOut,
)

log = logging.getLogger(__name__)


def identity_of(user: User) -> Identity:
    """Snapshot the fields of ``user`` needed once the unit of work is closed."""
    return Identity(
        user_id=user.id,
        email=user.email,
        name=user.name,
        email_verified=bool(user.email_verified),
        token_version=int(user.token_version or 0),
    )


class AuthService(BaseService):
    """
    Session lifecycle service (issue / resolve / rotate / revoke).

    Access tokens are short-lived and stateless apart from the optional jti
    revocation check. Refresh tokens are one-time-use: every rotation
    blacklists the presented jti for its remaining lifetime before a new pair
    (with a new jti) is issued. Bumping ``User.token_version`` invalidates
    every outstanding token of that user without touching the revocation
    store.
    """

    def __init__(
        self,
        *,
        token_provider: TokenProvider,
        revocation_store: RevocationStore,
        ctx: ServiceContext | None = None,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param token_provider: Adapter for issuing/verifying typed tokens.
        :param revocation_store: jti blacklist with TTL.
        :param ctx: Optional request-scoped context.
        """
        super().__init__(ctx=ctx)
        self.tokens = token_provider
        self.revocations = revocation_store

    # ------------------------------------------------------------------ #
    # Issue
    # ------------------------------------------------------------------ #

    def issue_tokens(self, identity: Identity) -> TokenPairOut:
        """Issue an access/refresh pair; the refresh token gets a fresh jti."""
        access = self.tokens.issue_access_token(
            user_id=identity.user_id,
            email=identity.email,
            token_version=identity.token_version,
        )
        refresh = self.tokens.issue_refresh_token(
            user_id=identity.user_id,
            jti=self.tokens.new_jti(),
            token_version=identity.token_version,
        )
        return TokenPairOut(access_token=access, refresh_token=refresh)

    def issue_session(self, user: User) -> SessionOut:
        identity = identity_of(user)
        return SessionOut(identity=identity, tokens=self.issue_tokens(identity))

    # ------------------------------------------------------------------ #
    # Resolve (per request)
    # ------------------------------------------------------------------ #

    def resolve(self, access_token: str | None, refresh_token: str | None) -> AuthResolution:
        """
        Establish the caller's identity from its cookies.

        1. A valid, non-revoked access token whose ``tv`` matches the user's
           current ``token_version`` authenticates the request.
        2. Otherwise, or when any check above fails, the refresh token is
           rotated.
        3. If neither succeeds the request is anonymous.

        :returns: A tagged :class:`AuthResolution`; never raises for bad
            credentials.
        """
        if access_token:
            try:
                return AuthResolution.authenticated(self.authenticate_access(access_token))
            except AuthenticationError as exc:
                log.debug("auth.access_rejected", extra={"reason": str(exc)})

        if refresh_token:
            try:
                session = self.rotate(refresh_token)
            except AuthenticationError as exc:
                log.debug("auth.refresh_rejected", extra={"reason": str(exc)})
            else:
                return AuthResolution.rotated(session.identity, session.tokens)

        return AuthResolution.unauthenticated()

    def authenticate_access(self, access_token: str) -> Identity:
        """
        Validate an access token and load its user.

        :raises AuthenticationError: Invalid, expired, revoked or stale token.
        """
        claims = self._verify(self.tokens.verify_access_token, access_token)
        if claims.jti and self.revocations.is_blacklisted(claims.jti):
            raise AuthenticationError("Token revoked.")
        return self._load_identity(claims)

    # ------------------------------------------------------------------ #
    # Refresh with one-time-use rotation
    # ------------------------------------------------------------------ #

    def rotate(self, refresh_token: str) -> SessionOut:
        """
        Exchange a refresh token for a new pair.

        The old jti is blacklisted *before* the new pair is issued so a
        replayed refresh token is rejected even though it has not expired.

        :raises AuthenticationError: Invalid, expired, revoked or stale token,
            or the revocation could not be recorded.
        """
        claims = self._verify(self.tokens.verify_refresh_token, refresh_token)
        jti = claims.jti or ""
        if self.revocations.is_blacklisted(jti):
            log.warning("auth.refresh_replayed", extra={"user_id": claims.subject})
            raise AuthenticationError("Token revoked.")

        identity = self._load_identity(claims)

        try:
            self.revocations.blacklist(jti, claims.remaining_seconds())
        except RevocationStoreError as exc:
            raise AuthenticationError("Session could not be refreshed.") from exc

        return SessionOut(identity=identity, tokens=self.issue_tokens(identity))

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, *, access_token: str | None, refresh_token: str | None) -> None:
        """
        Best-effort revocation of the presented tokens.

        Tokens that are already invalid or expired need no revocation and are
        ignored.
        """
        for token, verify in (
            (refresh_token, self.tokens.verify_refresh_token),
            (access_token, self.tokens.verify_access_token),
        ):
            if not token:
                continue
            try:
                claims = verify(token)
                if claims.jti:
                    self.revocations.blacklist(claims.jti, claims.remaining_seconds())
            except TokenError:
                continue
            except RevocationStoreError:
                log.warning("auth.logout_revocation_failed", exc_info=True)

    def logout_all(self, user_id: int) -> int:
        """
        Invalidate every outstanding token of ``user_id``.

        :returns: The new ``token_version``.
        """
        with self.rw_uow() as uow:
            repo: UserRepository = uow.users
            version = repo.bump_token_version(user_id)
        log.info("auth.logout_all", extra={"user_id": user_id})
        return version

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    @staticmethod
    def _verify(verify, token: str) -> TokenClaims:
        try:
            return verify(token)
        except TokenError as exc:
            raise AuthenticationError(str(exc)) from exc

    def _load_identity(self, claims: TokenClaims) -> Identity:
        try:
            user_id = claims.user_id
        except TokenError as exc:
            raise AuthenticationError(str(exc)) from exc
        if claims.token_version is None:
            raise AuthenticationError("Token invalid.")

        with self.ro_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get(user_id)
            if user is None:
                raise AuthenticationError("User not found.")
            if int(user.token_version or 0) != claims.token_version:
                raise AuthenticationError("Session expired.")
            return identity_of(user)
