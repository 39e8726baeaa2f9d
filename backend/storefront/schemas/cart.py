"""Cart schemas."""

from __future__ import annotations

from marshmallow import fields

from .common import BaseSchema, Money


class CartAddSchema(BaseSchema):
    product_id = fields.Raw(data_key="productId", load_default=None)
    quantity = fields.Raw(load_default=1)


class CartQuantitySchema(BaseSchema):
    product_id = fields.Raw(data_key="productId", load_default=None)
    quantity = fields.Integer(
        required=True, error_messages={"invalid": "quantity must be a number"}
    )


class CartRemoveSchema(BaseSchema):
    product_id = fields.Raw(data_key="productId", load_default=None)


class CartLineSchema(BaseSchema):
    product_id = fields.Integer(data_key="productId")
    name = fields.String()
    slug = fields.String(allow_none=True)
    image = fields.String(allow_none=True)
    price = Money()
    quantity = fields.Integer()


class CartSchema(BaseSchema):
    id = fields.Integer()
    count = fields.Integer()
    items = fields.List(fields.Nested(CartLineSchema))
