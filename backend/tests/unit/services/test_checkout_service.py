"""
Unit tests for CheckoutService.

Covers the place-order validation gates, payment verification (including
idempotent retries and session expiry) and abandonment.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from unittest import mock

import pytest
from freezegun import freeze_time
from storefront.models.cart import Cart
from storefront.models.order import Order
from storefront.models.product import Product
from storefront.models.user import User
from storefront.services._shared.errors import (
    AuthenticationError,
    AuthorizationError,
    IntegrityViolationError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from storefront.services._shared.ports.payment_gateway import PaymentGatewayError
from storefront.services.checkout.dto import CheckoutRules, PlaceOrderIn, VerifyPaymentIn
from storefront.services.checkout.service import CheckoutService

from tests.factories.address import AddressFactory
from tests.factories.cart import CartFactory, CartItemFactory
from tests.factories.product import ProductFactory
from tests.factories.user import UserFactory

SID = "checkout-session-1"


@dataclass
class Shopper:
    user_id: int
    email: str
    address_id: int
    cart_id: int
    product_id: int


@pytest.fixture()
def service(infra) -> CheckoutService:
    return CheckoutService(payment_gateway=infra.payment_gateway, pending_orders=infra.pending_orders)


def make_shopper(session, *, lines=(("499.99", 2),), stock=10) -> Shopper:
    """A verified user with a default address and a cart holding ``lines``."""
    user = UserFactory()
    address = AddressFactory(user=user, is_default=True)
    cart = CartFactory(user_id=user.id)
    product = None
    for price, quantity in lines:
        product = ProductFactory(price=Decimal(price), stock=stock)
        CartItemFactory(cart=cart, product=product, quantity=quantity)
    session.flush()
    return Shopper(
        user_id=user.id,
        email=user.email,
        address_id=address.id,
        cart_id=cart.id,
        product_id=product.id if product is not None else 0,
    )


@pytest.fixture()
def shopper(session) -> Shopper:
    return make_shopper(session)


def place_dto(shopper: Shopper, **overrides) -> PlaceOrderIn:
    values = {
        "user_id": shopper.user_id,
        "email": shopper.email,
        "cart_id": shopper.cart_id,
        "shipping_address_id": shopper.address_id,
        "same_billing": True,
        "payment_method": "card",
    }
    values.update(overrides)
    return PlaceOrderIn(**values)


def verify_dto(infra, shopper: Shopper, order_id: str, *, payment_id: str = "pay_123", **overrides):
    values = {
        "user_id": shopper.user_id,
        "razorpay_order_id": order_id,
        "razorpay_payment_id": payment_id,
        "razorpay_signature": infra.payment_gateway.sign(order_id, payment_id),
    }
    values.update(overrides)
    return VerifyPaymentIn(**values)


# ------------------------------------------------------------------------- #
# Place order
# ------------------------------------------------------------------------- #
def test_card_order_is_priced_and_parked(service, infra, shopper):
    out = service.place_order(place_dto(shopper), session_id=SID)

    assert out.total_amount == Decimal("999.98")
    assert out.amount == 99998
    assert out.currency == "INR"
    assert out.key_id == infra.payment_gateway.key_id
    assert out.is_cod_advance is False
    assert out.prefill["email"] == shopper.email
    assert infra.payment_gateway.orders[-1].amount == 99998

    pending = infra.pending_orders.load(SID)
    assert pending.razorpay_order_id == out.razorpay_order_id
    assert pending.user_id == shopper.user_id
    assert pending.payload["subtotal"] == "999.98"
    assert pending.payload["shipping_address"]["address_ref_id"] == shopper.address_id


def test_cod_order_charges_a_third_up_front(service, infra, session):
    cod_shopper = make_shopper(session, lines=(("300.00", 3),))
    out = service.place_order(place_dto(cod_shopper, payment_method="cod"), session_id=SID)

    assert out.total_amount == Decimal("900.00")
    assert out.cod_advance_amount == Decimal("300.00")
    assert out.cod_remaining_amount == Decimal("600.00")
    assert out.cod_advance_amount + out.cod_remaining_amount == out.total_amount
    assert out.amount == 30000


def test_prices_come_from_products_not_cart_snapshot(service, infra, session, shopper):
    cart = session.get(Cart, shopper.cart_id)
    cart.items[0].price = Decimal("1.00")
    session.flush()

    out = service.place_order(place_dto(shopper), session_id=SID)
    assert out.total_amount == Decimal("999.98")
    assert infra.pending_orders.load(SID).payload["items"][0]["price"] == "499.99"


def test_shipping_charge_is_added(infra, shopper):
    service = CheckoutService(
        payment_gateway=infra.payment_gateway,
        pending_orders=infra.pending_orders,
        rules=CheckoutRules(shipping_charge=Decimal("49")),
    )
    out = service.place_order(place_dto(shopper), session_id=SID)
    assert out.total_amount == Decimal("1048.98")


def test_out_of_stock_product_is_named(service, infra, session):
    shopper = make_shopper(session, stock=0)
    with pytest.raises(IntegrityViolationError) as excinfo:
        service.place_order(place_dto(shopper), session_id=SID)

    assert "is out of stock" in str(excinfo.value)
    assert "Cotton Kurta" in str(excinfo.value)
    assert infra.pending_orders.load(SID) is None
    assert infra.payment_gateway.orders == []


def test_every_failing_line_is_reported(service, session):
    shopper = make_shopper(session, lines=(("100.00", 5), ("50.00", 3)), stock=2)
    with pytest.raises(IntegrityViolationError) as excinfo:
        service.place_order(place_dto(shopper), session_id=SID)
    errors = excinfo.value.errors
    assert len(errors) == 2
    assert all(error.startswith("Only 2 unit(s)") for error in errors)


def test_withdrawn_product_is_unavailable(service, session, shopper):
    session.get(Product, shopper.product_id).is_deleted = True
    session.flush()
    with pytest.raises(IntegrityViolationError, match="no longer available"):
        service.place_order(place_dto(shopper), session_id=SID)


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"cart_id": "abc"}, "Invalid cart reference."),
        ({"cart_id": -4}, "Invalid cart reference."),
        ({"cart_id": "\u00b2"}, "Invalid cart reference."),
        ({"cart_id": "9" * 30}, "Invalid cart reference."),
        ({"shipping_address_id": "\u00b2"}, "Please select a shipping address."),
        ({"shipping_address_id": "9" * 30}, "Please select a shipping address."),
        ({"shipping_address_id": None}, "Please select a shipping address."),
        ({"payment_method": "paypal"}, "Please select a valid payment method."),
        ({"same_billing": False, "billing_address_id": None}, "Please select a billing address."),
    ],
)
def test_bad_references_are_rejected(service, shopper, overrides, message):
    with pytest.raises(ValidationError, match=message):
        service.place_order(place_dto(shopper, **overrides), session_id=SID)


def test_anonymous_caller_is_rejected(service, shopper):
    with pytest.raises(AuthenticationError):
        service.place_order(place_dto(shopper, user_id=None), session_id=SID)


def test_foreign_address_and_cart_are_not_found(service, session, shopper):
    stranger = make_shopper(session)
    with pytest.raises(NotFoundError, match="Shipping address not found."):
        service.place_order(
            place_dto(shopper, shipping_address_id=stranger.address_id), session_id=SID
        )
    with pytest.raises(NotFoundError, match="Cart not found."):
        service.place_order(place_dto(shopper, cart_id=stranger.cart_id), session_id=SID)


def test_separate_billing_address_is_snapshotted(service, infra, session, shopper):
    billing = AddressFactory(user=session.get(User, shopper.user_id), city="Mumbai")
    session.flush()
    service.place_order(
        place_dto(shopper, same_billing=False, billing_address_id=billing.id), session_id=SID
    )
    payload = infra.pending_orders.load(SID).payload
    assert payload["billing_address"]["city"] == "Mumbai"
    assert payload["shipping_address"]["city"] == "Bengaluru"


def test_empty_cart(service, session):
    user = UserFactory()
    address = AddressFactory(user=user)
    cart = CartFactory(user_id=user.id)
    session.flush()
    dto = PlaceOrderIn(
        user_id=user.id,
        email=user.email,
        cart_id=cart.id,
        shipping_address_id=address.id,
        same_billing=True,
        payment_method="upi",
    )
    with pytest.raises(ValidationError, match="Your cart is empty."):
        service.place_order(dto, session_id=SID)


def test_minimum_order_amount(infra, shopper):
    service = CheckoutService(
        payment_gateway=infra.payment_gateway,
        pending_orders=infra.pending_orders,
        rules=CheckoutRules(min_order_amount=Decimal("5000")),
    )
    with pytest.raises(ValidationError, match="Order amount too low."):
        service.place_order(place_dto(shopper), session_id=SID)


def test_cart_line_cap(infra, session):
    shopper = make_shopper(session, lines=(("10.00", 1), ("20.00", 1)))
    service = CheckoutService(
        payment_gateway=infra.payment_gateway,
        pending_orders=infra.pending_orders,
        rules=CheckoutRules(max_cart_items=1),
    )
    with pytest.raises(ValidationError, match="maximum item limit"):
        service.place_order(place_dto(shopper), session_id=SID)


def test_provider_failure_is_generic(infra, shopper):
    gateway = mock.Mock(wraps=infra.payment_gateway)
    gateway.create_order.side_effect = PaymentGatewayError("HTTP 500 from provider")
    service = CheckoutService(payment_gateway=gateway, pending_orders=infra.pending_orders)

    with pytest.raises(UpstreamError) as excinfo:
        service.place_order(place_dto(shopper), session_id=SID)
    assert "HTTP 500" not in str(excinfo.value)
    assert infra.pending_orders.load(SID) is None


def test_order_note_is_sanitized(service, infra, shopper):
    service.place_order(place_dto(shopper, order_note="  <b>Leave at door</b>\x07 "), session_id=SID)
    assert infra.pending_orders.load(SID).payload["order_note"] == "bLeave at door/b"


# ------------------------------------------------------------------------- #
# Verify payment
# ------------------------------------------------------------------------- #
def test_verification_creates_paid_order_and_clears_cart(service, infra, session, shopper):
    placed = service.place_order(place_dto(shopper), session_id=SID)

    out = service.verify_payment(verify_dto(infra, shopper, placed.razorpay_order_id), session_id=SID)

    assert out.created is True
    assert out.order_id.startswith("ORD-")
    order = session.query(Order).filter_by(order_number=out.order_id).one()
    assert order.total_amount == Decimal("999.98")
    assert order.status == "confirmed"
    assert order.payment.status == "paid"
    assert order.payment.razorpay_payment_id == "pay_123"
    assert [(i.price, i.quantity) for i in order.items] == [(Decimal("499.99"), 2)]
    assert session.get(Cart, shopper.cart_id).items == []
    assert infra.pending_orders.load(SID) is None


def test_cod_verification_records_split(service, infra, session):
    cod_shopper = make_shopper(session, lines=(("300.00", 3),))
    placed = service.place_order(place_dto(cod_shopper, payment_method="cod"), session_id=SID)
    out = service.verify_payment(
        verify_dto(infra, cod_shopper, placed.razorpay_order_id), session_id=SID
    )

    payment = session.query(Order).filter_by(order_number=out.order_id).one().payment
    assert payment.is_cod_advance is True
    assert payment.cod_advance_paid is True
    assert payment.cod_advance_amount == Decimal("300.00")
    assert payment.cod_remaining_amount == Decimal("600.00")


def test_verification_is_idempotent(service, infra, session, shopper):
    placed = service.place_order(place_dto(shopper), session_id=SID)
    dto = verify_dto(infra, shopper, placed.razorpay_order_id)

    first = service.verify_payment(dto, session_id=SID)
    second = service.verify_payment(dto, session_id=SID)

    assert second.order_id == first.order_id
    assert second.created is False
    assert session.query(Order).count() == 1


def test_retry_with_pending_still_parked_returns_existing_order(service, infra, session, shopper):
    placed = service.place_order(place_dto(shopper), session_id=SID)
    parked = infra.pending_orders.load(SID)
    dto = verify_dto(infra, shopper, placed.razorpay_order_id)

    first = service.verify_payment(dto, session_id=SID)
    infra.pending_orders.save(SID, parked, ttl=timedelta(minutes=30))
    second = service.verify_payment(dto, session_id=SID)

    assert second.order_id == first.order_id
    assert second.created is False
    assert session.query(Order).count() == 1
    assert infra.pending_orders.load(SID) is None


def test_concurrent_verification_loses_to_the_unique_payment_reference(
    service, infra, session, shopper
):
    placed = service.place_order(place_dto(shopper), session_id=SID)
    parked = infra.pending_orders.load(SID)
    dto = verify_dto(infra, shopper, placed.razorpay_order_id)
    first = service.verify_payment(dto, session_id=SID)
    infra.pending_orders.save(SID, parked, ttl=timedelta(minutes=30))

    lookup = service._existing_order_number
    lookups = []

    def misses_before_insert(razorpay_order_id, user_id):
        lookups.append(razorpay_order_id)
        # The first lookup runs before the other request has committed
        return None if len(lookups) == 1 else lookup(razorpay_order_id, user_id)

    with mock.patch.object(service, "_existing_order_number", side_effect=misses_before_insert):
        second = service.verify_payment(dto, session_id=SID)

    assert len(lookups) == 2
    assert second.order_id == first.order_id
    assert second.created is False
    assert session.query(Order).count() == 1
    assert infra.pending_orders.load(SID) is None


def test_cart_clear_failure_does_not_undo_the_order(service, infra, session, shopper, caplog):
    placed = service.place_order(place_dto(shopper), session_id=SID)
    dto = verify_dto(infra, shopper, placed.razorpay_order_id)

    with mock.patch(
        "storefront.repositories.cart.CartRepository.clear",
        side_effect=RuntimeError("cart store down"),
    ):
        out = service.verify_payment(dto, session_id=SID)

    assert out.created is True
    assert session.query(Order).filter_by(order_number=out.order_id).count() == 1
    assert len(session.get(Cart, shopper.cart_id).items) == 1
    assert infra.pending_orders.load(SID) is None
    assert "checkout.cart_clear_failed" in caplog.text


def test_tampered_signature_creates_nothing(service, infra, session, shopper):
    placed = service.place_order(place_dto(shopper), session_id=SID)
    dto = verify_dto(infra, shopper, placed.razorpay_order_id, razorpay_signature="deadbeef")

    with pytest.raises(UpstreamError, match="Payment verification failed"):
        service.verify_payment(dto, session_id=SID)
    assert session.query(Order).count() == 0
    assert infra.pending_orders.load(SID) is not None


def test_expired_pending_order(service, infra, shopper):
    with freeze_time("2026-05-01 09:00:00") as frozen:
        placed = service.place_order(place_dto(shopper), session_id=SID)
        frozen.tick(timedelta(minutes=31))
        with pytest.raises(ValidationError, match="Checkout session expired"):
            service.verify_payment(
                verify_dto(infra, shopper, placed.razorpay_order_id), session_id=SID
            )
    assert infra.pending_orders.load(SID) is None


def test_missing_pending_order(service, infra, shopper):
    dto = verify_dto(infra, shopper, "order_unknown")
    with pytest.raises(ValidationError, match="Your session expired"):
        service.verify_payment(dto, session_id=SID)
    with pytest.raises(ValidationError, match="Your session expired"):
        service.verify_payment(dto, session_id=None)


def test_order_reference_mismatch(service, infra, shopper):
    service.place_order(place_dto(shopper), session_id=SID)
    dto = verify_dto(infra, shopper, "order_other")
    with pytest.raises(ValidationError, match="Order reference mismatch."):
        service.verify_payment(dto, session_id=SID)


def test_pending_order_of_another_user(service, infra, session, shopper):
    placed = service.place_order(place_dto(shopper), session_id=SID)
    intruder = make_shopper(session)
    dto = verify_dto(infra, intruder, placed.razorpay_order_id)
    with pytest.raises(AuthorizationError):
        service.verify_payment(dto, session_id=SID)


@pytest.mark.parametrize(
    "missing", ["razorpay_order_id", "razorpay_payment_id", "razorpay_signature"]
)
def test_missing_payment_details(service, infra, shopper, missing):
    dto = verify_dto(infra, shopper, "order_x", **{missing: None})
    with pytest.raises(ValidationError, match="Missing payment details."):
        service.verify_payment(dto, session_id=SID)


# ------------------------------------------------------------------------- #
# Abandonment
# ------------------------------------------------------------------------- #
def test_payment_failed_drops_pending_and_keeps_cart(service, infra, session, shopper):
    service.place_order(place_dto(shopper), session_id=SID)
    service.payment_failed(session_id=SID)

    assert infra.pending_orders.load(SID) is None
    assert len(session.get(Cart, shopper.cart_id).items) == 1
    # No session id is a no-op
    service.payment_failed(session_id=None)
