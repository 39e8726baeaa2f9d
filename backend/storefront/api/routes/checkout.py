"""Checkout endpoints: place order, verify payment, abandon payment.

All three answer ``{success: ..., ...}`` bodies; failures are rendered by
the handlers in :mod:`storefront.api.errors` so clients always receive an
``error`` and a ``redirect`` target.
"""

from __future__ import annotations

from flask import Blueprint

from storefront.api.deps import (
    checkout_service,
    checkout_session_id,
    json_body,
    json_response,
    require_auth,
    require_identity,
    timing,
    verified_required,
)
from storefront.api.errors import register_checkout_handlers
from storefront.schemas import (
    PlaceOrderResponseSchema,
    PlaceOrderSchema,
    VerifyPaymentResponseSchema,
    VerifyPaymentSchema,
)
from storefront.services.checkout.dto import PlaceOrderIn, VerifyPaymentIn

place_bp = Blueprint("checkout_place", __name__)
verify_bp = Blueprint("checkout_verify", __name__)

register_checkout_handlers(place_bp, failure_message="Something went wrong. Please try again.")
register_checkout_handlers(verify_bp, failure_message="Verification failed. Please contact support.")

place_schema = PlaceOrderSchema()
place_response_schema = PlaceOrderResponseSchema()
verify_schema = VerifyPaymentSchema()
verify_response_schema = VerifyPaymentResponseSchema()


@place_bp.post("/place-order")
@require_auth
@verified_required()
@timing
def place_order():
    """Price the cart and open a payment for it."""

    identity = require_identity()
    data = place_schema.load(json_body())
    result = checkout_service().place_order(
        PlaceOrderIn(user_id=identity.user_id, email=identity.email, **data),
        session_id=checkout_session_id(create=True),
    )
    return json_response(place_response_schema.dump(result))


@verify_bp.post("/verify-payment")
@require_auth
@verified_required()
@timing
def verify_payment():
    """Confirm the provider signature and record the order."""

    identity = require_identity()
    data = verify_schema.load(json_body())
    result = checkout_service().verify_payment(
        VerifyPaymentIn(user_id=identity.user_id, **data),
        session_id=checkout_session_id(),
    )
    return json_response(verify_response_schema.dump(result))


@place_bp.post("/payment-failed")
@require_auth
@verified_required()
@timing
def payment_failed():
    """Drop the pending order after an abandoned or failed payment."""

    checkout_service().payment_failed(session_id=checkout_session_id())
    return json_response({"success": True})
