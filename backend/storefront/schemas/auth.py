"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import fields, validate

from .common import BaseSchema


class RegisterSchema(BaseSchema):
    """Input payload for account registration."""

    name = fields.String(required=True, validate=validate.Length(min=1, max=100))
    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=8, max=128))


class LoginSchema(BaseSchema):
    """Input payload for authenticating a user."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))


class VerifyEmailSchema(BaseSchema):
    """OTP typed by the user; the account comes from the verify cookie."""

    otp = fields.String(load_default=None, allow_none=True, validate=validate.Length(max=12))


class ForgotPasswordSchema(BaseSchema):
    email = fields.Email(required=True, validate=validate.Length(max=254))


class ResetPasswordSchema(BaseSchema):
    """Input payload for completing a password reset."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    otp = fields.String(required=True, validate=validate.Length(min=1, max=12))
    password = fields.String(required=True, validate=validate.Length(min=8, max=128))


class IdentitySchema(BaseSchema):
    """Public representation of the signed-in user."""

    id = fields.Integer(attribute="user_id", required=True)
    email = fields.Email(required=True)
    name = fields.String(required=True)
    email_verified = fields.Boolean(data_key="emailVerified", required=True)
