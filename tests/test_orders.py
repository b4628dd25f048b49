# tests/test_orders.py
import pytest
from fastapi.testclient import TestClient

from storefront.main import app
from storefront.seed import ADMIN_TOKEN, FAKE_ADMIN_TOKEN, USER_TOKEN

client = TestClient(app)
USER = {"Authorization": f"Bearer {USER_TOKEN}"}


def product_id(title):
    products = client.get("/api/products", params={"search": title}).json()["products"]
    return next(p["id"] for p in products if p["title"] == title)


def test_cart_add_view_remove():
    pid = product_id("Laptop")
    r = client.post("/api/carts/me", json={"productId": pid, "quantity": 1}, headers=USER)
    assert r.status_code == 200
    r = client.post("/api/carts/me", json={"productId": pid, "quantity": 2}, headers=USER)
    [line] = r.json()["cart"]
    assert line["quantity"] == 3
    assert line["product"]["category"]["slug"] == "electronics"

    r = client.delete(f"/api/carts/me/{pid}", headers=USER)
    assert r.json()["cart"] == []
    # removing again is fine
    assert client.delete(f"/api/carts/me/{pid}", headers=USER).status_code == 200


def test_cart_validation():
    assert client.get("/api/carts/me").status_code == 401
    r = client.post("/api/carts/me", json={"productId": product_id("Laptop"), "quantity": 0}, headers=USER)
    assert r.status_code == 400
    r = client.post("/api/carts/me", json={"productId": 9999}, headers=USER)
    assert r.status_code == 404


def test_checkout_empty_cart():
    r = client.post("/api/orders", json={}, headers=USER)
    assert r.status_code == 400
    assert r.json()["detail"] == "cart empty"


def test_checkout_totals_and_history():
    client.post("/api/carts/me", json={"productId": product_id("Google Play 10"), "quantity": 2}, headers=USER)
    r = client.post("/api/orders", headers=USER)
    assert r.status_code == 201
    order = r.json()["order"]
    assert order["subtotal"] == pytest.approx(20)
    assert order["discount"] == pytest.approx(2)
    assert order["tax"] == pytest.approx(1.8)
    assert order["total"] == pytest.approx(19.8)
    assert order["items"][0]["quantity"] == 2

    assert client.get("/api/carts/me", headers=USER).json()["cart"] == []
    orders = client.get("/api/orders/me", headers=USER).json()["orders"]
    assert [o["id"] for o in orders] == [order["id"]]


def test_checkout_requires_topup_information():
    client.post("/api/carts/me", json={"productId": product_id("86 Diamonds")}, headers=USER)
    r = client.post("/api/orders", json={}, headers=USER)
    assert r.status_code == 400
    assert r.json()["detail"]["missing"] == ["game_user_id", "zone_id"]

    r = client.post(
        "/api/orders",
        json={"requirements": {"game_user_id": "123456", "zone_id": "2001"}},
        headers=USER,
    )
    assert r.status_code == 201
    assert r.json()["order"]["requirements"] == {"game_user_id": "123456", "zone_id": "2001"}

    view = client.get("/profile", headers=USER).json()
    assert view["topupInformation"]["zone_id"] == "2001"


def test_checkout_respects_stock():
    client.post("/api/carts/me", json={"productId": product_id("Phone Case"), "quantity": 4}, headers=USER)
    r = client.post("/api/orders", headers=USER)
    assert r.status_code == 409
    assert len(client.get("/api/carts/me", headers=USER).json()["cart"]) == 1


def test_order_visibility():
    client.post("/api/carts/me", json={"productId": product_id("Laptop")}, headers=USER)
    order_id = client.post("/api/orders", headers=USER).json()["order"]["id"]

    assert client.get(f"/api/orders/{order_id}", headers=USER).status_code == 200
    assert client.get(f"/api/orders/{order_id}", headers={"Authorization": f"Bearer {ADMIN_TOKEN}"}).status_code == 200
    assert client.get(f"/api/orders/{order_id}", headers={"Authorization": f"Bearer {FAKE_ADMIN_TOKEN}"}).status_code == 200
    assert client.get("/api/orders/missing", headers=USER).status_code == 404


def test_requirements_listing_and_saving():
    body = client.get("/api/requirements").json()
    assert {r["name"] for r in body["requirements"]} == {"game_user_id", "zone_id"}
    assert body["requirements"][0]["categories"] == ["mobile-legends"]
    assert body["values"] == {}

    r = client.put("/api/users/requirements", json={"requirements": {"game_user_id": " 42 "}}, headers=USER)
    assert r.status_code == 200
    assert client.get("/api/requirements", headers=USER).json()["values"] == {"game_user_id": "42"}

    r = client.put("/api/users/requirements", json={"requirements": {"shoe_size": "9"}}, headers=USER)
    assert r.status_code == 400
