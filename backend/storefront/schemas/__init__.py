"""Convenience exports for application schemas."""

from __future__ import annotations

from .address import AddressCreateSchema, AddressPatchSchema, AddressSchema
from .auth import (
    ForgotPasswordSchema,
    IdentitySchema,
    LoginSchema,
    RegisterSchema,
    ResetPasswordSchema,
    VerifyEmailSchema,
)
from .cart import CartAddSchema, CartLineSchema, CartQuantitySchema, CartRemoveSchema, CartSchema
from .checkout import (
    PlaceOrderResponseSchema,
    PlaceOrderSchema,
    VerifyPaymentResponseSchema,
    VerifyPaymentSchema,
)
from .common import BaseSchema, Money, first_error
from .order import OrderSchema

__all__ = [
    "BaseSchema",
    "Money",
    "first_error",
    "RegisterSchema",
    "LoginSchema",
    "VerifyEmailSchema",
    "ForgotPasswordSchema",
    "ResetPasswordSchema",
    "IdentitySchema",
    "PlaceOrderSchema",
    "PlaceOrderResponseSchema",
    "VerifyPaymentSchema",
    "VerifyPaymentResponseSchema",
    "AddressCreateSchema",
    "AddressPatchSchema",
    "AddressSchema",
    "CartAddSchema",
    "CartQuantitySchema",
    "CartRemoveSchema",
    "CartLineSchema",
    "CartSchema",
    "OrderSchema",
]
