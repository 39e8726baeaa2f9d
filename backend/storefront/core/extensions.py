"""Flask extension instances and the per-app infrastructure handles."""

from __future__ import annotations

import atexit
import logging
from dataclasses import dataclass, field
from typing import Any

import redis  # type: ignore[import-untyped]
from flask import Flask, current_app
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

from storefront.core.config import allows_in_memory_fallback, parse_ttl
from storefront.services._shared.ports import (
    InMemoryMailQueue,
    InMemoryPaymentGateway,
    InMemoryPendingOrderStore,
    InMemoryRevocationStore,
    MailQueue,
    PaymentGateway,
    PendingOrderStore,
    RevocationStore,
    TokenProvider,
)

log = logging.getLogger(__name__)

# Global naming convention for all constraints
convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# Import-safe, app-bound extensions
db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
migrate = Migrate(render_as_batch=True)

EXTENSION_KEY = "storefront"


@dataclass(slots=True)
class Infrastructure:
    """
    Explicitly constructed client handles shared by the services of one app.

    Built once in :func:`init_app`, reachable through
    :func:`get_infrastructure`, released by :meth:`close` at process exit.
    """

    token_provider: TokenProvider
    revocation_store: RevocationStore
    pending_orders: PendingOrderStore
    payment_gateway: PaymentGateway
    mail_queue: MailQueue
    redis_client: redis.Redis | None = None
    _closed: bool = field(default=False, repr=False)

    def close(self) -> None:
        """Release network clients; safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        closer = getattr(self.payment_gateway, "close", None)
        if callable(closer):
            closer()
        if self.redis_client is not None:
            try:
                self.redis_client.close()
            except RedisError:
                log.warning("redis.close_failed", exc_info=True)


def _connect_redis(app: Flask) -> redis.Redis | None:
    redis_url = app.config.get("REDIS_URL")
    if not redis_url:
        if not allows_in_memory_fallback(app.config):
            raise RuntimeError("REDIS_URL is required outside development and tests.")
        return None

    client = redis.Redis.from_url(redis_url)
    try:
        client.ping()
    except RedisError as exc:
        raise RuntimeError(f"Failed to connect to Redis at {redis_url!r}") from exc
    return client


def _build_gateway(app: Flask) -> PaymentGateway:
    key_id = app.config.get("RAZORPAY_KEY_ID")
    key_secret = app.config.get("RAZORPAY_KEY_SECRET")
    if app.config.get("TESTING") or not (key_id and key_secret):
        if not allows_in_memory_fallback(app.config):
            raise RuntimeError("RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET are required.")
        return InMemoryPaymentGateway(
            key_id=key_id or "rzp_test_key", key_secret=key_secret or "rzp_test_secret"
        )

    from storefront.infra.payments.razorpay_gateway import RazorpayGateway

    return RazorpayGateway(
        key_id=key_id,
        key_secret=key_secret,
        api_url=app.config.get("RAZORPAY_API_URL", "https://api.razorpay.com/v1"),
        timeout=float(app.config.get("PAYMENT_HTTP_TIMEOUT", 10)),
    )


def build_infrastructure(app: Flask) -> Infrastructure:
    """Construct every client handle from the app configuration."""
    from storefront.infra.jwt.jwt_token_provider import JWTTokenProvider

    cfg = app.config
    tokens = JWTTokenProvider(
        access_secret=cfg["JWT_ACCESS_SECRET"],
        refresh_secret=cfg["JWT_REFRESH_SECRET"],
        verify_secret=cfg.get("JWT_VERIFY_SECRET"),
        access_ttl=parse_ttl(cfg.get("ACCESS_TOKEN_TTL", "15m")),
        refresh_ttl=parse_ttl(cfg.get("REFRESH_TOKEN_TTL", "7d")),
        verify_ttl=parse_ttl(cfg.get("VERIFY_TOKEN_TTL", "15m")),
    )

    client = _connect_redis(app)
    revocations: RevocationStore
    pending: PendingOrderStore
    mail: MailQueue
    if client is None:
        log.warning("redis.disabled_using_in_memory_stores")
        revocations = InMemoryRevocationStore()
        pending = InMemoryPendingOrderStore()
        mail = InMemoryMailQueue()
    else:
        from storefront.infra.redis.redis_mail_queue import RedisMailQueue
        from storefront.infra.redis.redis_pending_order_store import RedisPendingOrderStore
        from storefront.infra.redis.redis_revocation_store import RedisRevocationStore

        revocations = RedisRevocationStore(client)
        pending = RedisPendingOrderStore(r=client)
        mail = RedisMailQueue(r=client, name=cfg.get("MAIL_QUEUE", "mail_queue"))

    return Infrastructure(
        token_provider=tokens,
        revocation_store=revocations,
        pending_orders=pending,
        payment_gateway=_build_gateway(app),
        mail_queue=mail,
        redis_client=client,
    )


def init_app(app: Flask, *, infrastructure: Infrastructure | None = None) -> None:
    """Initialize SQLAlchemy, migrations and the infrastructure handles.

    Parameters
    ----------
    app: flask.Flask
        Application used to bind extension instances. This call imports the
        :mod:`storefront.models` package so SQLAlchemy metadata is ready for
        migrations.
    infrastructure: Infrastructure | None
        Pre-built handles (tests inject doubles here); built from config when
        omitted.
    """
    db.init_app(app)

    # Ensure models are imported so Alembic sees metadata
    from storefront import models as _models  # noqa: F401

    migrate.init_app(app, db)

    infra = infrastructure or build_infrastructure(app)
    app.extensions[EXTENSION_KEY] = infra
    atexit.register(infra.close)


def get_infrastructure(app: Flask | None = None) -> Infrastructure:
    """Return the handles bound to ``app`` (defaults to ``current_app``)."""
    target: Any = app or current_app
    infra = target.extensions.get(EXTENSION_KEY)
    if infra is None:
        raise RuntimeError("Infrastructure is not initialized. Call init_app() first.")
    return infra


def get_redis() -> redis.Redis:
    """Return the initialized Redis client."""
    client = get_infrastructure().redis_client
    if client is None:
        raise RuntimeError("Redis client is not initialized.")
    return client
