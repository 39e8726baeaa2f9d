# storefront/infra/payments/razorpay_gateway.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field

import requests

from storefront.services._shared.ports.payment_gateway import (
    PaymentGateway,
    PaymentGatewayError,
    ProviderOrder,
    signature_matches,
)

log = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.razorpay.com/v1"


@dataclass(slots=True)
class RazorpayGateway(PaymentGateway):
    """
    Thin client for the Razorpay Orders API.

    Only two calls are needed: creating an order for the charge amount and
    checking the HMAC signature the checkout widget returns after payment.

    :param key_id: Public key id (also handed to the browser widget).
    :param key_secret: API secret; signs payment callbacks.
    :param api_url: Base URL of the REST API.
    :param timeout: Per-request timeout in seconds.
    """

    key_id: str
    key_secret: str
    api_url: str = DEFAULT_API_URL
    timeout: float = 10.0
    session: requests.Session = field(default_factory=requests.Session)

    def create_order(self, *, amount: int, currency: str, receipt: str) -> ProviderOrder:
        url = f"{self.api_url.rstrip('/')}/orders"
        body = {"amount": int(amount), "currency": currency, "receipt": receipt}
        try:
            resp = self.session.post(
                url,
                json=body,
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as exc:
            log.error("razorpay.create_order_failed", exc_info=True)
            raise PaymentGatewayError("Payment provider request failed.") from exc
        except ValueError as exc:
            log.error("razorpay.create_order_bad_response", exc_info=True)
            raise PaymentGatewayError("Payment provider returned an invalid response.") from exc

        order_id = data.get("id") if isinstance(data, dict) else None
        if not order_id:
            raise PaymentGatewayError("Payment provider response missing order id.")
        return ProviderOrder(
            id=str(order_id),
            amount=int(data.get("amount", amount)),
            currency=str(data.get("currency", currency)),
            receipt=str(data.get("receipt", receipt)),
        )

    def verify_signature(self, *, order_id: str, payment_id: str, signature: str) -> bool:
        return signature_matches(self.key_secret, order_id, payment_id, signature)

    def close(self) -> None:
        self.session.close()
