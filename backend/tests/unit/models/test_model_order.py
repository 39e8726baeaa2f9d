"""Tests for orders, their payments and status transitions."""

from __future__ import annotations

import re

import pytest
from sqlalchemy.exc import IntegrityError
from storefront.models.order import Order, generate_order_number

from tests.factories.order import OrderFactory


def test_order_number_format():
    number = generate_order_number()
    assert re.fullmatch(r"ORD-\d{13}-[A-Z0-9]{5}", number)


def test_factory_builds_items_and_payment(session):
    order = OrderFactory()
    assert len(order.items) == 1
    assert order.payment is not None
    assert order.payment.status == "paid"


def test_razorpay_order_id_is_unique(session):
    OrderFactory(lines__razorpay_order_id="order_dup")
    with pytest.raises(IntegrityError):
        OrderFactory(lines__razorpay_order_id="order_dup")
    session.rollback()


@pytest.mark.parametrize(
    ("start", "target"),
    [
        ("pending", "confirmed"),
        ("confirmed", "processing"),
        ("confirmed", "shipped"),
        ("processing", "cancelled"),
        ("shipped", "delivered"),
    ],
)
def test_allowed_transitions(start, target):
    order = Order(status=start)
    order.transition_to(target)
    assert order.status == target


@pytest.mark.parametrize(
    ("start", "target"),
    [
        ("confirmed", "pending"),
        ("shipped", "processing"),
        ("shipped", "cancelled"),
        ("delivered", "cancelled"),
        ("cancelled", "confirmed"),
        ("confirmed", "lost"),
    ],
)
def test_rejected_transitions(start, target):
    order = Order(status=start)
    with pytest.raises(ValueError):
        order.transition_to(target)
    assert order.status == start
