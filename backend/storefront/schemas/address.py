"""Address book schemas."""

from __future__ import annotations

from marshmallow import RAISE, fields, validate

from .common import BaseSchema


class AddressCreateSchema(BaseSchema):
    """Payload for saving a new address; country is always set server-side."""

    label = fields.String(load_default="Home", validate=validate.Length(max=30))
    full_name = fields.String(data_key="fullName", validate=validate.Length(min=1, max=100), required=True)
    phone = fields.String(validate=validate.Length(min=1, max=20), required=True)
    alternate_phone = fields.String(
        data_key="alternatePhone", load_default=None, allow_none=True, validate=validate.Length(max=20)
    )
    line1 = fields.String(validate=validate.Length(min=1, max=200), required=True)
    line2 = fields.String(load_default=None, allow_none=True, validate=validate.Length(max=200))
    landmark = fields.String(load_default=None, allow_none=True, validate=validate.Length(max=120))
    city = fields.String(validate=validate.Length(min=1, max=80), required=True)
    state = fields.String(validate=validate.Length(min=1, max=80), required=True)
    postal_code = fields.String(data_key="postalCode", validate=validate.Length(min=1, max=12), required=True)
    is_default = fields.Boolean(data_key="isDefault", load_default=False)


class AddressPatchSchema(BaseSchema):
    """Partial update. Only editable fields are declared; anything else is rejected."""

    class Meta(BaseSchema.Meta):
        unknown = RAISE

    label = fields.String(validate=validate.Length(max=30))
    full_name = fields.String(data_key="fullName", validate=validate.Length(max=100))
    phone = fields.String(validate=validate.Length(max=20))
    alternate_phone = fields.String(data_key="alternatePhone", allow_none=True, validate=validate.Length(max=20))
    line1 = fields.String(validate=validate.Length(max=200))
    line2 = fields.String(allow_none=True, validate=validate.Length(max=200))
    landmark = fields.String(allow_none=True, validate=validate.Length(max=120))
    city = fields.String(validate=validate.Length(max=80))
    state = fields.String(validate=validate.Length(max=80))
    postal_code = fields.String(data_key="postalCode", validate=validate.Length(max=12))


class AddressSchema(BaseSchema):
    """Representation of a saved address."""

    id = fields.Integer()
    label = fields.String()
    full_name = fields.String(data_key="fullName")
    phone = fields.String()
    alternate_phone = fields.String(data_key="alternatePhone", allow_none=True)
    line1 = fields.String()
    line2 = fields.String(allow_none=True)
    landmark = fields.String(allow_none=True)
    city = fields.String()
    state = fields.String()
    country = fields.String()
    postal_code = fields.String(data_key="postalCode")
    is_default = fields.Boolean(data_key="isDefault")
    created_at = fields.DateTime(data_key="createdAt", allow_none=True)
