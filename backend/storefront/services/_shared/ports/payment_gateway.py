from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from typing import Protocol


class PaymentGatewayError(Exception):
    """The payment provider could not be reached or rejected the request."""


@dataclass(frozen=True, slots=True)
class ProviderOrder:
    """
    Provider-side charge intent.

    :param id: Provider order id (e.g. ``order_Nx...``).
    :type id: str
    :param amount: Amount in minor currency units (paise).
    :type amount: int
    :param currency: ISO currency code.
    :type currency: str
    :param receipt: Merchant receipt reference sent with the request.
    :type receipt: str
    """

    id: str
    amount: int
    currency: str
    receipt: str


def payment_signature(secret: str, order_id: str, payment_id: str) -> str:
    """Return the hex HMAC-SHA256 of ``"<order_id>|<payment_id>"``."""
    message = f"{order_id}|{payment_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def signature_matches(secret: str, order_id: str, payment_id: str, signature: str) -> bool:
    """Constant-time comparison of a provider signature."""
    expected = payment_signature(secret, order_id, payment_id)
    return hmac.compare_digest(expected.encode(), str(signature).encode())


class PaymentGateway(Protocol):
    """Port for the external payment provider.

    ``key_id`` is the public key handed to the browser checkout widget.
    """

    key_id: str

    def create_order(self, *, amount: int, currency: str, receipt: str) -> ProviderOrder: ...

    def verify_signature(self, *, order_id: str, payment_id: str, signature: str) -> bool: ...


class InMemoryPaymentGateway(PaymentGateway):
    """Offline gateway that mints provider ids and signs with a local secret."""

    def __init__(self, *, key_id: str = "rzp_test_key", key_secret: str = "rzp_test_secret") -> None:
        self.key_id = key_id
        self._key_secret = key_secret
        self.orders: list[ProviderOrder] = []

    def create_order(self, *, amount: int, currency: str, receipt: str) -> ProviderOrder:
        order = ProviderOrder(
            id=f"order_{secrets.token_hex(7)}",
            amount=int(amount),
            currency=currency,
            receipt=receipt,
        )
        self.orders.append(order)
        return order

    def verify_signature(self, *, order_id: str, payment_id: str, signature: str) -> bool:
        return signature_matches(self._key_secret, order_id, payment_id, signature)

    def sign(self, order_id: str, payment_id: str) -> str:
        """Produce the signature the provider would send back to the client."""
        return payment_signature(self._key_secret, order_id, payment_id)
