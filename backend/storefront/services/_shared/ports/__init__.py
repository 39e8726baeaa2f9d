"""
storefront.services._shared.ports
=================================

Collection of *ports* (hexagonal interfaces) that define the contracts
between the service layer and the infrastructure it drives.

Modules
-------
- :mod:`token_provider`:
    Defines :class:`~.TokenProvider` and :class:`~.TokenClaims` for typed
    access/refresh/verify tokens.

- :mod:`revocation_store`:
    Defines :class:`~.RevocationStore`, the jti blacklist with TTL.

- :mod:`pending_order_store`:
    Defines :class:`~.PendingOrderStore` and :class:`~.PendingOrder`, the
    session-scoped bridge between provider order and durable order.

- :mod:`payment_gateway`:
    Defines :class:`~.PaymentGateway` and signature helpers.

- :mod:`mail_queue`:
    Defines :class:`~.MailQueue` and :class:`~.MailMessage`.

Each port ships an in-memory implementation used by tests and by local
debug runs without Redis. Concrete adapters live under ``storefront.infra``.
"""

from __future__ import annotations

from .mail_queue import InMemoryMailQueue, MailMessage, MailPayloadError, MailQueue
from .payment_gateway import (
    InMemoryPaymentGateway,
    PaymentGateway,
    PaymentGatewayError,
    ProviderOrder,
)
from .pending_order_store import InMemoryPendingOrderStore, PendingOrder, PendingOrderStore
from .revocation_store import InMemoryRevocationStore, RevocationStore, RevocationStoreError
from .token_provider import (
    ExpiredTokenError,
    InvalidTokenError,
    TokenClaims,
    TokenError,
    TokenProvider,
)

__all__ = [
    "TokenProvider",
    "TokenClaims",
    "TokenError",
    "InvalidTokenError",
    "ExpiredTokenError",
    "RevocationStore",
    "RevocationStoreError",
    "InMemoryRevocationStore",
    "PendingOrder",
    "PendingOrderStore",
    "InMemoryPendingOrderStore",
    "PaymentGateway",
    "PaymentGatewayError",
    "ProviderOrder",
    "InMemoryPaymentGateway",
    "MailMessage",
    "MailQueue",
    "MailPayloadError",
    "InMemoryMailQueue",
]
