"""Tests for the order API."""

import pytest

from storefront.models import Product
from tests.conftest import SHIPPING_ADDRESS


def order_body(*lines, **extra):
    body = {
        "orderItems": [{"product": product.id, "quantity": quantity} for product, quantity in lines],
        "shippingAddress": SHIPPING_ADDRESS,
        "paymentMethod": "credit_card",
    }
    body.update(extra)
    return body


@pytest.fixture
def placed(client, alice, auth_headers, make_product):
    """Alice's pending order for two units of a 20.00 product."""
    product = make_product(price=20.0, stock=5)
    response = client.post("/orders", json=order_body((product, 2)), headers=auth_headers(alice))
    assert response.status_code == 201
    return response.json()["data"]


class TestCreateOrder:
    def test_created(self, client, db, alice, auth_headers, make_product):
        headphones = make_product(name="Headphones", price=40.0, stock=5)
        cable = make_product(name="Cable", price=5.5, stock=5)

        response = client.post(
            "/orders",
            json=order_body((headphones, 1), (cable, 2), notes="Leave at the door"),
            headers=auth_headers(alice),
        )

        assert response.status_code == 201
        order = response.json()["data"]
        assert order["userId"] == alice.id
        assert order["status"] == "pending"
        assert order["isPaid"] is False
        assert order["isDelivered"] is False
        assert order["itemsPrice"] == 51.0
        assert order["taxPrice"] == 5.1
        assert order["shippingPrice"] == 0.0
        assert order["totalPrice"] == 56.1
        assert order["shippingAddress"]["zipCode"] == "62701"
        assert order["notes"] == "Leave at the door"
        assert [(line["name"], line["quantity"]) for line in order["orderItems"]] == [("Headphones", 1), ("Cable", 2)]
        assert db.get(Product, headphones.id).stock == 4
        assert db.get(Product, cable.id).stock == 3

    def test_small_order_pays_shipping(self, client, alice, auth_headers, make_product):
        product = make_product(price=20.0)

        order = client.post("/orders", json=order_body((product, 1)), headers=auth_headers(alice)).json()["data"]

        assert order["shippingPrice"] == 10.0
        assert order["totalPrice"] == 32.0

    def test_client_prices_ignored(self, client, alice, auth_headers, make_product):
        product = make_product(price=20.0)
        body = order_body((product, 1))
        body["orderItems"][0]["price"] = 0.01
        body["totalPrice"] = 0.01

        order = client.post("/orders", json=body, headers=auth_headers(alice)).json()["data"]

        assert order["orderItems"][0]["price"] == 20.0
        assert order["totalPrice"] == 32.0

    def test_insufficient_stock(self, client, db, alice, auth_headers, make_product):
        plenty = make_product(name="Plenty", stock=10)
        scarce = make_product(name="Scarce", stock=1)

        response = client.post(
            "/orders", json=order_body((plenty, 3), (scarce, 2)), headers=auth_headers(alice)
        )

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Insufficient stock for Scarce. Available: 1"}
        assert db.get(Product, plenty.id).stock == 10

    def test_unknown_product(self, client, alice, auth_headers):
        response = client.post("/orders", json=order_body((Product(id=999), 1)), headers=auth_headers(alice))

        assert response.status_code == 404

    @pytest.mark.parametrize("change", [
        {"orderItems": []},
        {"shippingAddress": {"street": "1 Main St"}},
        {"paymentMethod": "bitcoin"},
    ])
    def test_invalid_body(self, client, alice, auth_headers, make_product, change):
        body = order_body((make_product(), 1))
        body.update(change)

        response = client.post("/orders", json=body, headers=auth_headers(alice))

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert response.json()["errors"]

    def test_zero_quantity(self, client, alice, auth_headers, make_product):
        response = client.post("/orders", json=order_body((make_product(), 0)), headers=auth_headers(alice))

        assert response.status_code == 400

    def test_requires_token(self, client, make_product):
        response = client.post("/orders", json=order_body((make_product(), 1)))

        assert response.status_code == 401


class TestQuote:
    def test_matches_order_pricing(self, client, db, alice, auth_headers, make_product):
        product = make_product(price=20.0, stock=5)

        response = client.post(
            "/orders/quote", json={"orderItems": [{"product": product.id, "quantity": 2}]},
            headers=auth_headers(alice),
        )

        assert response.status_code == 200
        quote = response.json()["data"]
        assert quote["itemsPrice"] == 40.0
        assert quote["taxPrice"] == 4.0
        assert quote["shippingPrice"] == 10.0
        assert quote["totalPrice"] == 54.0
        assert quote["freeShippingThreshold"] == 50.0
        assert db.get(Product, product.id).stock == 5


class TestReadOrders:
    def test_my_orders(self, client, alice, bob, auth_headers, placed):
        mine = client.get("/orders/myorders", headers=auth_headers(alice)).json()
        theirs = client.get("/orders/myorders", headers=auth_headers(bob)).json()

        assert mine["count"] == 1
        assert mine["data"][0]["id"] == placed["id"]
        assert theirs == {"success": True, "count": 0, "data": [], "pagination": None}

    def test_owner_reads(self, client, alice, auth_headers, placed):
        response = client.get(f"/orders/{placed['id']}", headers=auth_headers(alice))

        assert response.status_code == 200
        assert response.json()["data"]["totalPrice"] == placed["totalPrice"]

    def test_admin_reads(self, client, admin, auth_headers, placed):
        response = client.get(f"/orders/{placed['id']}", headers=auth_headers(admin))

        assert response.status_code == 200

    def test_other_user_forbidden(self, client, bob, auth_headers, placed):
        response = client.get(f"/orders/{placed['id']}", headers=auth_headers(bob))

        assert response.status_code == 403
        assert response.json() == {"success": False, "message": "Not authorized to access this order"}

    def test_missing(self, client, alice, auth_headers):
        response = client.get("/orders/12345", headers=auth_headers(alice))

        assert response.status_code == 404
        assert response.json()["message"] == "Order not found: 12345"


class TestAdminOrders:
    def test_listing(self, client, admin, auth_headers, placed):
        response = client.get("/orders", params={"status": "pending"}, headers=auth_headers(admin))

        body = response.json()
        assert response.status_code == 200
        assert body["count"] == 1
        assert body["pagination"] == {"page": 1, "limit": 10, "total": 1, "pages": 1}

    def test_listing_filters(self, client, admin, auth_headers, placed):
        response = client.get("/orders", params={"status": "shipped"}, headers=auth_headers(admin))

        assert response.json()["count"] == 0
        assert response.json()["pagination"]["total"] == 0

    def test_listing_admin_only(self, client, alice, auth_headers, placed):
        response = client.get("/orders", headers=auth_headers(alice))

        assert response.status_code == 403

    def test_status_update(self, client, admin, auth_headers, placed):
        response = client.put(
            f"/orders/{placed['id']}/status",
            json={"status": "shipped", "trackingNumber": "1Z999"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        order = response.json()["data"]
        assert order["status"] == "shipped"
        assert order["trackingNumber"] == "1Z999"

    def test_illegal_transition(self, client, admin, auth_headers, placed):
        client.put(f"/orders/{placed['id']}/status", json={"status": "cancelled"}, headers=auth_headers(admin))

        response = client.put(
            f"/orders/{placed['id']}/status", json={"status": "shipped"}, headers=auth_headers(admin)
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Cannot move order from 'cancelled' to 'shipped'"

    def test_unknown_status(self, client, admin, auth_headers, placed):
        response = client.put(
            f"/orders/{placed['id']}/status", json={"status": "lost"}, headers=auth_headers(admin)
        )

        assert response.status_code == 400

    def test_status_update_admin_only(self, client, alice, auth_headers, placed):
        response = client.put(
            f"/orders/{placed['id']}/status", json={"status": "shipped"}, headers=auth_headers(alice)
        )

        assert response.status_code == 403

    def test_deliver(self, client, admin, auth_headers, placed):
        client.put(f"/orders/{placed['id']}/status", json={"status": "shipped"}, headers=auth_headers(admin))

        response = client.put(f"/orders/{placed['id']}/deliver", headers=auth_headers(admin))

        order = response.json()["data"]
        assert response.status_code == 200
        assert order["status"] == "delivered"
        assert order["isDelivered"] is True
        assert order["deliveredAt"] is not None


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
