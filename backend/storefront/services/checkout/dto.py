"""
DTOs for CheckoutService.

Inputs carry raw client values (identifiers are validated by the service so
each bad reference gets its own message). Outputs are plain values; the API
layer decides the wire names.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import Any

from storefront.core.config import parse_ttl

# --------------------------------------------------------------------------- #
# Configuration
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class CheckoutRules:
    """
    Tunables of the checkout path.

    :param max_cart_items: Anti-abuse cap on distinct cart lines.
    :param max_note_length: Order note is truncated to this many characters.
    :param min_order_amount: Smallest accepted total.
    :param min_item_quantity: Lowest accepted line quantity.
    :param max_item_quantity: Highest accepted line quantity.
    :param pending_ttl: Lifetime of a pending order.
    :param shipping_charge: Flat shipping charge added to every order.
    :param cod_advance_divisor: COD advance is ``total / divisor``.
    :param currency: ISO currency sent to the payment provider.
    """

    max_cart_items: int = 50
    max_note_length: int = 500
    min_order_amount: Decimal = Decimal("1")
    min_item_quantity: int = 1
    max_item_quantity: int = 100
    pending_ttl: timedelta = timedelta(minutes=30)
    shipping_charge: Decimal = Decimal("0")
    cod_advance_divisor: int = 3
    currency: str = "INR"

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> CheckoutRules:
        return cls(
            max_cart_items=int(config.get("MAX_CART_ITEMS", 50)),
            max_note_length=int(config.get("MAX_ORDER_NOTE_LENGTH", 500)),
            min_order_amount=Decimal(str(config.get("MIN_ORDER_AMOUNT", "1"))),
            min_item_quantity=int(config.get("MIN_ITEM_QUANTITY", 1)),
            max_item_quantity=int(config.get("MAX_ITEM_QUANTITY", 100)),
            pending_ttl=parse_ttl(config.get("PENDING_ORDER_TTL", "30m")),
            shipping_charge=Decimal(str(config.get("SHIPPING_CHARGE", "0"))),
            cod_advance_divisor=int(config.get("COD_ADVANCE_DIVISOR", 3)),
            currency=str(config.get("PAYMENT_CURRENCY", "INR")),
        )


# --------------------------------------------------------------------------- #
# Input
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class PlaceOrderIn:
    """
    Checkout request.

    :param user_id: Authenticated user (``None`` when anonymous).
    :param email: Authenticated user's email (payment prefill).
    :param cart_id: Raw cart reference.
    :param shipping_address_id: Raw shipping address reference.
    :param billing_address_id: Raw billing address reference.
    :param same_billing: Bill to the shipping address.
    :param payment_method: ``card``, ``upi`` or ``cod``.
    :param order_note: Free text, sanitized and truncated.
    """

    user_id: int | None
    email: str
    cart_id: Any
    shipping_address_id: Any
    billing_address_id: Any = None
    same_billing: bool = False
    payment_method: str | None = None
    order_note: str | None = None


@dataclass(frozen=True, slots=True)
class VerifyPaymentIn:
    """
    Payment callback relayed by the client.

    :param user_id: Authenticated user (``None`` when anonymous).
    :param razorpay_order_id: Provider order id.
    :param razorpay_payment_id: Provider payment id.
    :param razorpay_signature: Hex HMAC issued by the provider.
    """

    user_id: int | None
    razorpay_order_id: str | None
    razorpay_payment_id: str | None
    razorpay_signature: str | None


# --------------------------------------------------------------------------- #
# Output
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class PlaceOrderOut:
    """
    Data the client needs to open the payment widget.

    :param amount: Charge in minor units (paise) as sent to the provider.
    :param total_amount: Full order total in major units.
    """

    razorpay_order_id: str
    amount: int
    currency: str
    key_id: str
    payment_method: str
    is_cod_advance: bool
    cod_advance_amount: Decimal
    cod_remaining_amount: Decimal
    total_amount: Decimal
    prefill: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class VerifyPaymentOut:
    """
    Outcome of a successful verification.

    :param order_id: Human-readable order number.
    :param created: ``False`` when an existing order was returned.
    """

    order_id: str
    created: bool
