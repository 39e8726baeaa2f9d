"""Durable orders, their line items and payment sub-record."""

from __future__ import annotations

import secrets
import string
import time
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin

# --- Domain enums ---
ORDER_STATUSES = ("pending", "confirmed", "processing", "shipped", "delivered", "cancelled")
PAYMENT_METHODS = ("card", "upi", "cod")
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")

OrderStatus = Enum(*ORDER_STATUSES, name="order_status")
PaymentMethod = Enum(*PAYMENT_METHODS, name="payment_method")
PaymentStatus = Enum(*PAYMENT_STATUSES, name="payment_status")

# Fulfilment progression; cancellation is allowed until the parcel ships.
_FORWARD_FLOW = ("pending", "confirmed", "processing", "shipped", "delivered")
_CANCELLABLE = frozenset({"pending", "confirmed", "processing"})

_ORDER_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def generate_order_number() -> str:
    """Human-readable id: ``ORD-<epoch ms>-<5 upper alnum>``."""
    suffix = "".join(secrets.choice(_ORDER_SUFFIX_ALPHABET) for _ in range(5))
    return f"ORD-{int(time.time() * 1000)}-{suffix}"


class Order(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Order created exactly once, when a payment is verified.

    Addresses are stored as snapshots, line prices are copied from the
    product rows at checkout time. Orders are never deleted and their status
    only moves forward (see :meth:`transition_to`).
    """

    __tablename__ = "orders"

    order_number: Mapped[str] = mapped_column(String(60), nullable=False)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    cart_id: Mapped[int | None] = mapped_column(Integer)
    shipping_address: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    billing_address: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    shipping_charge: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    discount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    order_note: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(OrderStatus, nullable=False, default="pending")

    __table_args__ = (
        UniqueConstraint("order_number", name="uq_orders_order_number"),
        Index("ix_orders_user_id", "user_id"),
    )

    items: Mapped[list[OrderItem]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.id",
    )
    payment: Mapped[OrderPayment | None] = relationship(
        "OrderPayment",
        back_populates="order",
        cascade="all, delete-orphan",
        uselist=False,
        lazy="selectin",
    )

    def transition_to(self, status: str) -> None:
        """
        Move the order forward.

        :raises ValueError: Unknown status, terminal state, backwards move, or
            cancellation after shipping.
        """
        if status not in ORDER_STATUSES:
            raise ValueError(f"Unknown order status: {status}")
        current = self.status
        if current in ("delivered", "cancelled"):
            raise ValueError(f"Order is already {current}.")
        if status == "cancelled":
            if current not in _CANCELLABLE:
                raise ValueError(f"Cannot cancel an order that is {current}.")
        elif _FORWARD_FLOW.index(status) <= _FORWARD_FLOW.index(current):
            raise ValueError(f"Cannot move order from {current} to {status}.")
        self.status = status


class OrderItem(PKMixin, db.Model):
    """Line item with price and name frozen at checkout."""

    __tablename__ = "order_items"

    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    image: Mapped[str | None] = mapped_column(String(500))
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    order: Mapped[Order] = relationship("Order", back_populates="items")


class OrderPayment(PKMixin, TimestampMixin, db.Model):
    """
    Payment sub-record (1:1 with order).

    ``razorpay_order_id`` is unique: one durable order per provider payment
    session. COD orders record the advance charged online and the remainder
    due on delivery.
    """

    __tablename__ = "order_payments"

    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    method: Mapped[str] = mapped_column(PaymentMethod, nullable=False)
    status: Mapped[str] = mapped_column(PaymentStatus, nullable=False, default="pending")
    razorpay_order_id: Mapped[str] = mapped_column(String(64), nullable=False)
    razorpay_payment_id: Mapped[str | None] = mapped_column(String(64))
    razorpay_signature: Mapped[str | None] = mapped_column(String(128))
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    is_cod_advance: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    cod_advance_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    cod_remaining_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    cod_advance_paid: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    __table_args__ = (
        UniqueConstraint("order_id", name="uq_order_payments_order_id"),
        UniqueConstraint("razorpay_order_id", name="uq_order_payments_razorpay_order_id"),
    )

    order: Mapped[Order] = relationship("Order", back_populates="payment")
