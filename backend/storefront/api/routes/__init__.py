"""Route blueprints grouped by mount point."""

from __future__ import annotations

from flask import Blueprint

# Import blueprints *only here* to keep imports localized and avoid cycles.
from .addresses import bp as addresses_bp  # noqa: E402
from .auth import bp as auth_bp  # noqa: E402
from .cart import bp as cart_bp  # noqa: E402
from .checkout import place_bp as checkout_place_bp  # noqa: E402
from .checkout import verify_bp as checkout_verify_bp  # noqa: E402
from .health import bp as health_bp  # noqa: E402
from .orders import api_bp as orders_api_bp  # noqa: E402
from .orders import page_bp as order_pages_bp  # noqa: E402

# Each tuple: (blueprint, url_prefix_relative_to_mount_point)
SITE_REGISTRY: list[tuple[Blueprint, str]] = [
    (auth_bp, ""),  # -> /login, /register, ...
    (checkout_place_bp, "/checkout"),  # -> /checkout/place-order, /checkout/payment-failed
    (checkout_verify_bp, "/checkout"),  # -> /checkout/verify-payment
    (order_pages_bp, "/orders"),  # -> /orders/<order_id>
]

API_REGISTRY: list[tuple[Blueprint, str]] = [
    (health_bp, ""),  # -> /api/health
    (addresses_bp, "/addresses"),
    (cart_bp, "/cart"),
    (orders_api_bp, "/orders"),
]
