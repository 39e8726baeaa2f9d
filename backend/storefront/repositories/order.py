"""Durable order persistence."""

from __future__ import annotations

from typing import cast

from sqlalchemy import select

from storefront.models.order import Order, OrderPayment
from storefront.repositories.base import BaseRepository


class OrderRepository(BaseRepository[Order]):
    """Orders are insert-only from the checkout path; never deleted."""

    model = Order

    def _sortable_fields(self):
        return {"created_at": Order.created_at, "total_amount": Order.total_amount}

    def _filterable_fields(self):
        return {"user_id": Order.user_id, "status": Order.status}

    def delete(self, instance: Order) -> None:
        raise RuntimeError("Orders are never deleted.")

    def get_by_razorpay_order_id(self, razorpay_order_id: str) -> Order | None:
        """Lookup by the idempotency key stored on the payment sub-record."""
        stmt = (
            select(Order)
            .join(OrderPayment, OrderPayment.order_id == Order.id)
            .where(OrderPayment.razorpay_order_id == razorpay_order_id)
        )
        return cast(Order | None, self.session.execute(stmt).scalars().first())

    def get_by_number_for_user(self, order_number: str, user_id: int) -> Order | None:
        stmt = select(Order).where(Order.order_number == order_number, Order.user_id == user_id)
        return cast(Order | None, self.session.execute(stmt).scalars().first())

    def list_for_user(self, user_id: int, *, limit: int = 20) -> list[Order]:
        return self.list(filters={"user_id": user_id}, sort=["-created_at"], limit=limit)
