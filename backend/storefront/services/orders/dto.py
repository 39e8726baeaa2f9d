"""Read models for orders."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any


@dataclass(frozen=True, slots=True)
class OrderItemOut:
    product_id: int
    name: str
    image: str | None
    price: Decimal
    quantity: int


@dataclass(frozen=True, slots=True)
class OrderPaymentOut:
    """
    Payment projection. Provider signature is never exposed.
    """

    method: str
    status: str
    razorpay_order_id: str
    razorpay_payment_id: str | None
    paid_at: datetime | None
    is_cod_advance: bool
    cod_advance_amount: Decimal
    cod_remaining_amount: Decimal
    cod_advance_paid: bool


@dataclass(frozen=True, slots=True)
class OrderOut:
    """
    Full order detail as seen by its owner.

    :param order_number: Public id (``ORD-...``).
    :param shipping_address: Snapshot taken at checkout.
    :param billing_address: Snapshot taken at checkout.
    """

    order_number: str
    status: str
    shipping_address: dict[str, Any]
    billing_address: dict[str, Any]
    subtotal: Decimal
    shipping_charge: Decimal
    discount: Decimal
    total_amount: Decimal
    order_note: str | None
    created_at: datetime | None
    items: list[OrderItemOut] = field(default_factory=list)
    payment: OrderPaymentOut | None = None
