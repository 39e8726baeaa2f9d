"""Address book endpoints."""

from __future__ import annotations

from flask import Blueprint

from storefront.api.deps import (
    address_service,
    json_body,
    json_response,
    require_auth,
    require_identity,
    timing,
)
from storefront.schemas import AddressCreateSchema, AddressPatchSchema, AddressSchema
from storefront.services.addresses.dto import AddressCreateIn, AddressPatch

bp = Blueprint("addresses", __name__)

create_schema = AddressCreateSchema()
patch_schema = AddressPatchSchema()
address_schema = AddressSchema()
addresses_schema = AddressSchema(many=True)


@bp.get("")
@require_auth
@timing
def list_addresses():
    identity = require_identity()
    rows = address_service().list(identity.user_id)
    return json_response({"data": addresses_schema.dump(rows)})


@bp.post("")
@require_auth
@timing
def create_address():
    """Save an address; the first one becomes the default."""

    identity = require_identity()
    data = create_schema.load(json_body())
    row = address_service().create(identity.user_id, AddressCreateIn(**data))
    return json_response({"data": address_schema.dump(row)}, status=201)


@bp.patch("/<address_id>")
@require_auth
@timing
def update_address(address_id: str):
    """Partial update limited to editable fields."""

    identity = require_identity()
    data = patch_schema.load(json_body())
    row = address_service().update(identity.user_id, address_id, AddressPatch.from_mapping(data))
    return json_response({"data": address_schema.dump(row)})


@bp.delete("/<address_id>")
@require_auth
@timing
def delete_address(address_id: str):
    identity = require_identity()
    address_service().delete(identity.user_id, address_id)
    return json_response({"ok": True})


@bp.post("/<address_id>/default")
@require_auth
@timing
def set_default_address(address_id: str):
    identity = require_identity()
    row = address_service().set_default(identity.user_id, address_id)
    return json_response({"data": address_schema.dump(row)})
