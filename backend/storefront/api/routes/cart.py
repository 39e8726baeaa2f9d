"""Cart endpoints. One cart per user, created on first use."""

from __future__ import annotations

from flask import Blueprint

from storefront.api.deps import (
    cart_service,
    json_body,
    json_response,
    require_auth,
    require_identity,
    timing,
)
from storefront.schemas import (
    CartAddSchema,
    CartLineSchema,
    CartQuantitySchema,
    CartRemoveSchema,
    CartSchema,
)
from storefront.services.cart.dto import CartChangeOut

bp = Blueprint("cart", __name__)

add_schema = CartAddSchema()
quantity_schema = CartQuantitySchema()
remove_schema = CartRemoveSchema()
line_schema = CartLineSchema()
cart_schema = CartSchema()


def _change_body(change: CartChangeOut) -> dict:
    body = {"success": True, "count": change.count, "quantity": change.quantity}
    if change.line is not None:
        body["item"] = line_schema.dump(change.line)
    return body


@bp.get("")
@require_auth
@timing
def get_cart():
    identity = require_identity()
    return json_response({"data": cart_schema.dump(cart_service().get(identity.user_id))})


@bp.get("/count")
@require_auth
@timing
def cart_count():
    identity = require_identity()
    return json_response({"count": cart_service().count(identity.user_id)})


@bp.post("/add")
@require_auth
@timing
def add_to_cart():
    """Add units of a product (clamped to the per-line maximum)."""

    identity = require_identity()
    data = add_schema.load(json_body())
    change = cart_service().add(identity.user_id, data["product_id"], data["quantity"])
    return json_response(_change_body(change))


@bp.patch("/qty")
@require_auth
@timing
def update_quantity():
    """Set a line quantity; zero or below removes the line."""

    identity = require_identity()
    data = quantity_schema.load(json_body())
    change = cart_service().update_quantity(identity.user_id, data["product_id"], data["quantity"])
    return json_response(_change_body(change))


@bp.post("/remove")
@require_auth
@timing
def remove_from_cart():
    identity = require_identity()
    data = remove_schema.load(json_body())
    change = cart_service().remove(identity.user_id, data["product_id"])
    return json_response(_change_body(change))
