from storefront.models.address import Address
from storefront.models.cart import Cart, CartItem
from storefront.models.order import Order, OrderItem, OrderPayment
from storefront.models.product import Product
from storefront.models.user import User, UserOtp

__all__ = [
    "Address",
    "Cart",
    "CartItem",
    "Order",
    "OrderItem",
    "OrderPayment",
    "Product",
    "User",
    "UserOtp",
]
