"""Pytest fixtures configuring an isolated transactional database layer.

Each test runs inside a SAVEPOINT-backed transaction against an in-memory
SQLite database so data changes never leak between cases. Redis, the payment
provider and the mail queue are replaced by the in-memory doubles shipped
with each port; a fresh set is installed for every test.
"""

from __future__ import annotations

import os

import pytest
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker
from storefront.core.config import TestingConfig
from storefront.core.extensions import EXTENSION_KEY, Infrastructure
from storefront.core.extensions import db as _db
from storefront.factory import create_app
from storefront.infra.jwt.jwt_token_provider import JWTTokenProvider
from storefront.services._shared.ports import (
    InMemoryMailQueue,
    InMemoryPaymentGateway,
    InMemoryPendingOrderStore,
    InMemoryRevocationStore,
)


class TestConfig(TestingConfig):
    """Fixed secrets so tokens minted by tests verify against the app."""

    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SECRET_KEY = "test-secret-key"
    JWT_ACCESS_SECRET = "test-access-secret"
    JWT_REFRESH_SECRET = "test-refresh-secret"
    JWT_VERIFY_SECRET = "test-verify-secret"
    COOKIE_SECURE = False
    LOG_LEVEL = "WARNING"


def build_test_infrastructure() -> Infrastructure:
    """Fresh in-memory handles wired like production ones."""
    return Infrastructure(
        token_provider=JWTTokenProvider(
            access_secret=TestConfig.JWT_ACCESS_SECRET,
            refresh_secret=TestConfig.JWT_REFRESH_SECRET,
            verify_secret=TestConfig.JWT_VERIFY_SECRET,
        ),
        revocation_store=InMemoryRevocationStore(),
        pending_orders=InMemoryPendingOrderStore(),
        payment_gateway=InMemoryPaymentGateway(),
        mail_queue=InMemoryMailQueue(),
    )


@pytest.fixture(scope="session")
def app():
    # DATABASE_URL from the shell must not leak into the run
    os.environ.pop("DATABASE_URL", None)
    app = create_app(TestConfig, infrastructure=build_test_infrastructure())
    app.logger.setLevel("WARNING")
    return app


@pytest.fixture(autouse=True)
def infra(app) -> Infrastructure:
    """Fresh in-memory Redis, payment and mail doubles for every test."""
    handles = build_test_infrastructure()
    app.extensions[EXTENSION_KEY] = handles
    return handles


@pytest.fixture(scope="session")
def db(app):
    """Schema created once; the app context stays pushed for the whole run."""
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    conn = db.engine.connect()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def session(db, connection):
    """
    Request-scoped session swapped in for ``db.session``.

    The test body runs in a SAVEPOINT under an outer transaction that is
    rolled back afterwards. When service code commits or rolls back, the
    SAVEPOINT ends and a new one is opened, so units of work behave as they
    do in production while nothing survives the test.
    """
    outer = connection.begin()
    scoped = scoped_session(sessionmaker(bind=connection, future=True))
    savepoint = connection.begin_nested()

    @event.listens_for(scoped(), "after_transaction_end")
    def _reopen_savepoint(sess, trans):  # pragma: no cover
        nonlocal savepoint
        if trans.nested and not trans._parent.nested:
            savepoint = connection.begin_nested()

    app_session = db.session
    db.session.remove()
    db.session = scoped
    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = app_session
        outer.rollback()


@pytest.fixture()
def client(app, session):
    return app.test_client()


@pytest.fixture(scope="session")
def faker():
    from faker import Faker

    Faker.seed(1337)
    return Faker()


@pytest.fixture(autouse=True)
def _factories_session(session):
    from tests.factories import SQLAlchemySession

    SQLAlchemySession.set(session)
    yield
