"""Order lookup endpoints, always scoped to the caller."""

from __future__ import annotations

from flask import Blueprint, request

from storefront.api.deps import (
    json_response,
    login_required,
    order_service,
    require_auth,
    require_identity,
    timing,
    verified_required,
)
from storefront.schemas import OrderSchema

page_bp = Blueprint("order_pages", __name__)
api_bp = Blueprint("orders", __name__)

order_schema = OrderSchema()
orders_schema = OrderSchema(many=True)

MAX_LIST_LIMIT = 50


@page_bp.get("/<string:order_id>")
@login_required
@verified_required(redirect_to_page=True)
@timing
def order_detail(order_id: str):
    """Return one of the caller's orders; foreign or unknown ids are 404."""

    identity = require_identity()
    order = order_service().get_for_user(order_id, identity.user_id)
    return json_response({"data": order_schema.dump(order)})


@api_bp.get("")
@require_auth
@verified_required()
@timing
def list_orders():
    """Most recent orders of the caller."""

    identity = require_identity()
    limit = request.args.get("limit", default=20, type=int) or 20
    limit = max(1, min(limit, MAX_LIST_LIMIT))
    orders = order_service().list_for_user(identity.user_id, limit=limit)
    return json_response({"data": orders_schema.dump(orders)})
