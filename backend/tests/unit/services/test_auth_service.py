"""Unit tests for AuthService: issue, resolve, rotate, revoke."""

from __future__ import annotations

from unittest import mock

import pytest
from storefront.services._shared.errors import AuthenticationError
from storefront.services._shared.ports.revocation_store import (
    InMemoryRevocationStore,
    RevocationStoreError,
)
from storefront.services.auth.dto import ResolutionState
from storefront.services.auth.service import AuthService

from tests.factories.user import UserFactory


# ------------------------------ Fixtures ---------------------------------- #
@pytest.fixture()
def service(infra) -> AuthService:
    """AuthService wired to the per-test token provider and revocation list."""
    return AuthService(token_provider=infra.token_provider, revocation_store=infra.revocation_store)


@pytest.fixture()
def user(session):
    u = UserFactory()
    session.flush()
    return u


# -------------------------------- Tests ----------------------------------- #
def test_issue_session_returns_identity_and_pair(service, user):
    out = service.issue_session(user)
    assert out.identity.user_id == user.id
    assert out.identity.email_verified is True

    access = service.tokens.verify_access_token(out.tokens.access_token)
    refresh = service.tokens.verify_refresh_token(out.tokens.refresh_token)
    assert access.user_id == refresh.user_id == user.id
    assert access.token_version == refresh.token_version == 0


def test_resolve_with_valid_access_token(service, user):
    pair = service.issue_session(user).tokens
    resolution = service.resolve(pair.access_token, None)
    assert resolution.state is ResolutionState.AUTHENTICATED
    assert resolution.identity.user_id == user.id
    assert resolution.tokens is None


def test_resolve_anonymous_without_cookies(service):
    resolution = service.resolve(None, None)
    assert resolution.state is ResolutionState.UNAUTHENTICATED
    assert resolution.is_authenticated is False


def test_resolve_rotates_when_access_token_is_bad(service, user):
    pair = service.issue_session(user).tokens
    resolution = service.resolve("garbage", pair.refresh_token)

    assert resolution.state is ResolutionState.ROTATED
    assert resolution.identity.user_id == user.id
    assert resolution.tokens.refresh_token != pair.refresh_token
    # The presented refresh token is now spent
    old_jti = service.tokens.verify_refresh_token(pair.refresh_token).jti
    assert service.revocations.is_blacklisted(old_jti)


def test_resolve_falls_back_to_anonymous_when_both_fail(service, user):
    pair = service.issue_session(user).tokens
    service.rotate(pair.refresh_token)  # spend it
    resolution = service.resolve(None, pair.refresh_token)
    assert resolution.state is ResolutionState.UNAUTHENTICATED


def test_refresh_token_is_one_time_use(service, user):
    pair = service.issue_session(user).tokens
    rotated = service.rotate(pair.refresh_token)
    assert rotated.tokens.refresh_token != pair.refresh_token

    with pytest.raises(AuthenticationError, match="Token revoked."):
        service.rotate(pair.refresh_token)

    # The new token still works exactly once
    service.rotate(rotated.tokens.refresh_token)


def test_rotate_fails_when_revocation_cannot_be_recorded(infra, user):
    store = mock.Mock(spec=InMemoryRevocationStore)
    store.is_blacklisted.return_value = False
    store.blacklist.side_effect = RevocationStoreError("down")
    service = AuthService(token_provider=infra.token_provider, revocation_store=store)
    pair = service.issue_session(user).tokens

    with pytest.raises(AuthenticationError):
        service.rotate(pair.refresh_token)


def test_access_token_rejected_after_token_version_bump(service, user, session):
    pair = service.issue_session(user).tokens
    user_id = user.id

    new_version = service.logout_all(user_id)
    assert new_version == 1

    with pytest.raises(AuthenticationError, match="Session expired."):
        service.authenticate_access(pair.access_token)
    with pytest.raises(AuthenticationError):
        service.rotate(pair.refresh_token)


def test_logout_revokes_presented_tokens(service, user):
    pair = service.issue_session(user).tokens
    service.logout(access_token=pair.access_token, refresh_token=pair.refresh_token)

    with pytest.raises(AuthenticationError, match="Token revoked."):
        service.authenticate_access(pair.access_token)
    with pytest.raises(AuthenticationError, match="Token revoked."):
        service.rotate(pair.refresh_token)


def test_logout_ignores_invalid_tokens(service):
    service.logout(access_token="junk", refresh_token=None)


def test_access_token_for_deleted_user(service, infra):
    token = infra.token_provider.issue_access_token(
        user_id=987654, email="ghost@example.com", token_version=0
    )
    with pytest.raises(AuthenticationError, match="User not found."):
        service.authenticate_access(token)
