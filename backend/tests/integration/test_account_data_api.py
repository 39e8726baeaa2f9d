"""Address book, cart, order and health endpoints over HTTP."""

from __future__ import annotations

from decimal import Decimal

import pytest

from tests.factories.address import AddressFactory
from tests.factories.order import OrderFactory
from tests.factories.product import ProductFactory
from tests.factories.user import UserFactory
from tests.helpers.auth import login_as

ADDRESS = {
    "fullName": "Asha Rao",
    "phone": "9876543210",
    "line1": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "postalCode": "560001",
}


@pytest.fixture()
def user(client, infra, session):
    shopper = UserFactory()
    session.commit()
    login_as(client, infra, shopper)
    return shopper


# ------------------------------- Addresses -------------------------------- #
def test_address_book_round(client, user):
    first = client.post("/api/addresses", json=ADDRESS)
    assert first.status_code == 201
    first_id = first.get_json()["data"]["id"]
    assert first.get_json()["data"]["isDefault"] is True

    second = client.post("/api/addresses", json={**ADDRESS, "label": "Work"})
    second_id = second.get_json()["data"]["id"]

    resp = client.post(f"/api/addresses/{second_id}/default")
    assert resp.status_code == 200
    assert resp.get_json()["data"]["isDefault"] is True

    resp = client.patch(f"/api/addresses/{first_id}", json={"city": "Mysuru"})
    assert resp.get_json()["data"]["city"] == "Mysuru"

    listed = client.get("/api/addresses").get_json()["data"]
    assert [a["id"] for a in listed] == [second_id, first_id]

    assert client.delete(f"/api/addresses/{second_id}").get_json() == {"ok": True}
    listed = client.get("/api/addresses").get_json()["data"]
    assert [(a["id"], a["isDefault"]) for a in listed] == [(first_id, True)]


def test_second_default_conflicts(client, user):
    client.post("/api/addresses", json=ADDRESS)
    resp = client.post("/api/addresses", json={**ADDRESS, "isDefault": True})
    assert resp.status_code == 409
    assert resp.get_json()["code"] == "conflict"


def test_patch_rejects_unknown_fields(client, user):
    created = client.post("/api/addresses", json=ADDRESS).get_json()["data"]
    resp = client.patch(f"/api/addresses/{created['id']}", json={"country": "Nepal"})
    assert resp.status_code == 400


def test_foreign_address_is_404(client, user, session):
    foreign = AddressFactory()
    session.commit()
    resp = client.delete(f"/api/addresses/{foreign.id}")
    assert resp.status_code == 404
    assert resp.get_json()["detail"] == "Address not found."


def test_addresses_require_login(client):
    resp = client.get("/api/addresses")
    assert resp.status_code == 401
    assert resp.mimetype == "application/problem+json"


# --------------------------------- Cart ----------------------------------- #
def test_cart_endpoints(client, user, session):
    product = ProductFactory(price=Decimal("349.50"), stock=4)
    session.commit()
    product_id = product.id

    resp = client.post("/api/cart/add", json={"productId": product_id, "quantity": 2})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is True
    assert body["count"] == 2
    assert body["item"]["productId"] == product_id

    resp = client.patch("/api/cart/qty", json={"productId": product_id, "quantity": 3})
    assert resp.get_json()["quantity"] == 3

    cart = client.get("/api/cart").get_json()["data"]
    assert cart["count"] == 3
    assert [i["productId"] for i in cart["items"]] == [product_id]

    resp = client.patch("/api/cart/qty", json={"productId": product_id, "quantity": 9})
    assert resp.status_code == 400
    assert resp.get_json()["detail"] == "Only 4 left in stock"

    resp = client.post("/api/cart/remove", json={"productId": product_id})
    assert resp.get_json() == {"success": True, "count": 0, "quantity": 0}
    assert client.get("/api/cart/count").get_json() == {"count": 0}


def test_cart_add_unknown_product(client, user):
    resp = client.post("/api/cart/add", json={"productId": 424242})
    assert resp.status_code == 404


# -------------------------------- Orders ---------------------------------- #
def test_orders_list_and_detail(client, user, session):
    mine = OrderFactory(user_id=user.id)
    theirs = OrderFactory()
    session.commit()
    mine_number, theirs_number = mine.order_number, theirs.order_number

    listed = client.get("/api/orders").get_json()["data"]
    assert [o["orderId"] for o in listed] == [mine_number]

    assert client.get(f"/orders/{mine_number}").status_code == 200
    assert client.get(f"/orders/{theirs_number}").status_code == 404


def test_order_page_redirects_anonymous_to_login(client, session):
    resp = client.get("/orders/ORD-1")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/login")


def test_order_page_redirects_unverified_to_verification(client, infra, session):
    unverified = UserFactory(email_verified=False)
    session.commit()
    login_as(client, infra, unverified)
    resp = client.get("/orders/ORD-1")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/verify-email")


# -------------------------------- Health ---------------------------------- #
def test_health_without_redis(client, session):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "ok"
    assert body["db"] == "ok"
    assert body["redis"] == "disabled"
