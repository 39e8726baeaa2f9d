from __future__ import annotations

import logging

from storefront.models.order import Order, OrderPayment
from storefront.repositories.order import OrderRepository
from storefront.services._shared.base import BaseService
from storefront.services._shared.errors import NotFoundError, ValidationError

from .dto import OrderItemOut, OrderOut, OrderPaymentOut

logger = logging.getLogger(__name__)

MAX_ORDER_NUMBER_LENGTH = 60


def _payment_to_out(row: OrderPayment) -> OrderPaymentOut:
    return OrderPaymentOut(
        method=row.method,
        status=row.status,
        razorpay_order_id=row.razorpay_order_id,
        razorpay_payment_id=row.razorpay_payment_id,
        paid_at=row.paid_at,
        is_cod_advance=bool(row.is_cod_advance),
        cod_advance_amount=row.cod_advance_amount,
        cod_remaining_amount=row.cod_remaining_amount,
        cod_advance_paid=bool(row.cod_advance_paid),
    )


def order_to_out(row: Order) -> OrderOut:
    return OrderOut(
        order_number=row.order_number,
        status=row.status,
        shipping_address=dict(row.shipping_address or {}),
        billing_address=dict(row.billing_address or {}),
        subtotal=row.subtotal,
        shipping_charge=row.shipping_charge,
        discount=row.discount,
        total_amount=row.total_amount,
        order_note=row.order_note,
        created_at=row.created_at,
        items=[
            OrderItemOut(
                product_id=item.product_id,
                name=item.name,
                image=item.image,
                price=item.price,
                quantity=item.quantity,
            )
            for item in row.items
        ],
        payment=_payment_to_out(row.payment) if row.payment is not None else None,
    )


class OrderQueryService(BaseService):
    """Read-only order lookups, always scoped to the requesting user."""

    def get_for_user(self, order_number: str, user_id: int) -> OrderOut:
        """
        Fetch one order by its public number.

        Orders of other users are reported as missing.
        """
        order_number = (order_number or "").strip()
        if not order_number or len(order_number) > MAX_ORDER_NUMBER_LENGTH:
            raise ValidationError("Invalid order reference.")

        with self.ro_uow() as uow:
            repo: OrderRepository = uow.orders
            order = repo.get_by_number_for_user(order_number, user_id)
            if order is None:
                raise NotFoundError("Order", order_number, "Order not found.")
            logger.info("order.fetched", extra={"user_id": user_id, "order_number": order_number})
            return order_to_out(order)

    def list_for_user(self, user_id: int, *, limit: int = 20) -> list[OrderOut]:
        """Newest orders first."""
        with self.ro_uow() as uow:
            repo: OrderRepository = uow.orders
            return [order_to_out(row) for row in repo.list_for_user(user_id, limit=limit)]
