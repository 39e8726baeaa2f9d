"""Checkout request/response schemas."""

from __future__ import annotations

from typing import Any

from marshmallow import ValidationError, fields, pre_load, validate

from .common import BaseSchema, Money

MAX_PAYLOAD_KEYS = 20
MAX_PAYLOAD_DEPTH = 4


def _too_deep(value: Any, depth: int = 0) -> bool:
    if depth > MAX_PAYLOAD_DEPTH:
        return True
    if isinstance(value, dict):
        return any(_too_deep(v, depth + 1) for v in value.values())
    if isinstance(value, list):
        return any(_too_deep(v, depth + 1) for v in value)
    return False


class CheckoutPayloadSchema(BaseSchema):
    """Rejects oversized or deeply nested bodies before field validation."""

    @pre_load
    def sanity_check(self, data: Any, **_: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if len(data) > MAX_PAYLOAD_KEYS:
            raise ValidationError("Malformed request")
        if _too_deep(data):
            raise ValidationError("Malformed request structure")
        return data


class PlaceOrderSchema(CheckoutPayloadSchema):
    """
    Place-order body. Identifiers stay raw so the service can answer each
    bad reference with its own message.
    """

    cart_id = fields.Raw(data_key="cartId", load_default=None, allow_none=True)
    shipping_address_id = fields.Raw(
        data_key="shippingAddressId", load_default=None, allow_none=True
    )
    billing_address_id = fields.Raw(data_key="billingAddressId", load_default=None, allow_none=True)
    same_billing = fields.Boolean(data_key="sameBilling", load_default=False)
    payment_method = fields.String(data_key="paymentMethod", load_default=None, allow_none=True)
    order_note = fields.String(data_key="orderNote", load_default=None, allow_none=True)


class VerifyPaymentSchema(CheckoutPayloadSchema):
    """Provider callback fields, relayed verbatim by the client."""

    razorpay_order_id = fields.String(
        load_default=None, allow_none=True, validate=validate.Length(max=64)
    )
    razorpay_payment_id = fields.String(
        load_default=None, allow_none=True, validate=validate.Length(max=64)
    )
    razorpay_signature = fields.String(
        load_default=None, allow_none=True, validate=validate.Length(max=128)
    )


class PrefillSchema(BaseSchema):
    name = fields.String()
    contact = fields.String()
    email = fields.String()


class PlaceOrderResponseSchema(BaseSchema):
    """Data for the payment widget; ``amount`` is in minor units."""

    success = fields.Constant(True)
    razorpay_order_id = fields.String(data_key="razorpayOrderId")
    amount = fields.Integer()
    currency = fields.String()
    key_id = fields.String(data_key="keyId")
    payment_method = fields.String(data_key="paymentMethod")
    is_cod_advance = fields.Boolean(data_key="isCodAdvance")
    cod_advance_amount = Money(data_key="codAdvanceAmount")
    cod_remaining_amount = Money(data_key="codRemainingAmount")
    total_amount = Money(data_key="totalAmount")
    prefill = fields.Nested(PrefillSchema)


class VerifyPaymentResponseSchema(BaseSchema):
    success = fields.Constant(True)
    order_id = fields.String(data_key="orderId")
