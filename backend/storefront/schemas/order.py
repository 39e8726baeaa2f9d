"""Order read schemas."""

from __future__ import annotations

from marshmallow import fields

from .common import BaseSchema, Money


class OrderItemSchema(BaseSchema):
    product_id = fields.Integer(data_key="productId")
    name = fields.String()
    image = fields.String(allow_none=True)
    price = Money()
    quantity = fields.Integer()


class OrderPaymentSchema(BaseSchema):
    """Payment block; the provider signature is never serialized."""

    method = fields.String()
    status = fields.String()
    razorpay_order_id = fields.String(data_key="razorpayOrderId")
    razorpay_payment_id = fields.String(data_key="razorpayPaymentId", allow_none=True)
    paid_at = fields.DateTime(data_key="paidAt", allow_none=True)
    is_cod_advance = fields.Boolean(data_key="isCodAdvance")
    cod_advance_amount = Money(data_key="codAdvanceAmount")
    cod_remaining_amount = Money(data_key="codRemainingAmount")
    cod_advance_paid = fields.Boolean(data_key="codAdvancePaid")


class OrderSchema(BaseSchema):
    order_number = fields.String(data_key="orderId")
    status = fields.String()
    shipping_address = fields.Dict(data_key="shippingAddress")
    billing_address = fields.Dict(data_key="billingAddress")
    subtotal = Money()
    shipping_charge = Money(data_key="shippingCharge")
    discount = Money()
    total_amount = Money(data_key="totalAmount")
    order_note = fields.String(data_key="orderNote", allow_none=True)
    created_at = fields.DateTime(data_key="createdAt", allow_none=True)
    items = fields.List(fields.Nested(OrderItemSchema))
    payment = fields.Nested(OrderPaymentSchema, allow_none=True)
