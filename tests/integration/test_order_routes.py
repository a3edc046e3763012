"""Integration tests for order API endpoints."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from tests.fakes import FakeDatabase


def order_body(items: list[dict], **overrides) -> dict:
    body = {
        "items": items,
        "shipping_address": {"street": "Al Wasl Rd", "city": "Dubai", "country": "AE"},
        "customer_info": {
            "first_name": "Sara",
            "last_name": "Nasser",
            "email": "sara@example.com",
            "mobile": "+971501234567",
        },
        "payment_method": "card",
    }
    body.update(overrides)
    return body


@pytest.fixture
def tee(fake_db: FakeDatabase) -> ObjectId:
    (product_id,) = fake_db.products.seed(
        {
            "name": "Logo Tee",
            "price": 20.0,
            "images": ["tee.jpg"],
            "sizes": [{"name": "M", "stock": 5}, {"name": "L", "stock": 1}],
            "stock": 6,
        }
    )
    return product_id


class TestCreateOrder:
    """Tests for POST /api/v1/orders endpoint."""

    def test_guest_checkout(self, client: TestClient, fake_db: FakeDatabase, tee: ObjectId) -> None:
        """Test that an order can be placed without a token."""
        response = client.post(
            "/api/v1/orders",
            json=order_body([{"product_id": str(tee), "quantity": 2, "size": "M"}], currency="AED"),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Order created successfully"
        assert data["order"]["total_amount"] == round(round(20.0 * 3.6725, 2) * 2, 2)
        assert data["order"]["currency"] == "AED"
        assert data["order"]["status"] == "pending"

        stored = fake_db.orders.get(ObjectId(data["order"]["id"]))
        assert stored["user"] is None
        assert fake_db.products.get(tee)["sizes"][0]["stock"] == 3

    def test_authenticated_order_is_linked_to_user(
        self, client: TestClient, fake_db: FakeDatabase, tee: ObjectId, make_token: Callable[..., str]
    ) -> None:
        response = client.post(
            "/api/v1/orders",
            json=order_body([{"product_id": str(tee), "quantity": 1, "size": "L"}]),
            headers={"Authorization": f"Bearer {make_token(sub='user-7')}"},
        )

        assert response.status_code == 201
        assert fake_db.orders.get(ObjectId(response.json()["order"]["id"]))["user"] == "user-7"

    def test_invalid_token_still_places_guest_order(
        self, client: TestClient, fake_db: FakeDatabase, tee: ObjectId, make_token: Callable[..., str]
    ) -> None:
        response = client.post(
            "/api/v1/orders",
            json=order_body([{"product_id": str(tee), "quantity": 1, "size": "M"}]),
            headers={"Authorization": f"Bearer {make_token(expires_in=-60)}"},
        )

        assert response.status_code == 201
        assert fake_db.orders.get(ObjectId(response.json()["order"]["id"]))["user"] is None

    def test_insufficient_stock(self, client: TestClient, fake_db: FakeDatabase, tee: ObjectId) -> None:
        response = client.post(
            "/api/v1/orders",
            json=order_body([{"product_id": str(tee), "quantity": 2, "size": "L"}]),
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "availability_error"
        assert data["message"] == "Insufficient stock for Logo Tee (size: L). Available: 1, Requested: 2"
        assert data["details"][0]["ctx"]["available"] == 1
        assert data["details"][0]["ctx"]["requested"] == 2
        assert fake_db.products.get(tee)["sizes"][1]["stock"] == 1

    def test_unknown_size(self, client: TestClient, tee: ObjectId) -> None:
        response = client.post(
            "/api/v1/orders",
            json=order_body([{"product_id": str(tee), "quantity": 1, "size": "XXL"}]),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Size 'XXL' not found for product Logo Tee"

    def test_unknown_product(self, client: TestClient, fake_db: FakeDatabase) -> None:
        response = client.post("/api/v1/orders", json=order_body([{"product_id": str(ObjectId()), "quantity": 1}]))

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_validation_errors_carry_locations(self, client: TestClient, fake_db: FakeDatabase) -> None:
        response = client.post(
            "/api/v1/orders",
            json=order_body(
                [],
                shipping_address={"street": "", "city": "Cairo", "country": "EG"},
                payment_method="cash",
            ),
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "validation_error"
        locations = [detail["loc"] for detail in data["details"]]
        assert ["items"] in locations
        assert ["shipping_address", "street"] in locations
        assert ["payment_method"] in locations

    def test_unsupported_currency(self, client: TestClient, tee: ObjectId) -> None:
        response = client.post(
            "/api/v1/orders",
            json=order_body([{"product_id": str(tee), "quantity": 1, "size": "M"}], currency="XYZ"),
        )

        assert response.status_code == 400
        assert response.json()["details"][0]["loc"] == ["currency"]

    def test_storage_failure_returns_generic_500(self, client: TestClient, fake_db: FakeDatabase, tee: ObjectId) -> None:
        from pymongo.errors import OperationFailure

        fake_db.orders.fail_next("insert_one", OperationFailure("disk full on shard-03"))

        response = client.post(
            "/api/v1/orders",
            json=order_body([{"product_id": str(tee), "quantity": 1, "size": "M"}]),
        )

        assert response.status_code == 500
        assert response.json()["message"] == "Failed to create order"
        assert "shard-03" not in response.text
        assert fake_db.products.get(tee)["sizes"][0]["stock"] == 5


class TestListOrders:
    """Tests for GET /api/v1/orders/my-orders and /api/v1/orders/all."""

    @pytest.fixture
    def seeded_orders(self, fake_db: FakeDatabase) -> None:
        now = datetime.now(timezone.utc)
        base = {
            "items": [{"product": ObjectId(), "quantity": 1, "price": 5.0, "name": "Mug", "image": None}],
            "total_amount": 5.0,
            "currency": "USD",
            "exchange_rate": 1.0,
            "shipping_address": {"street": "s", "city": "c", "country": "JO"},
            "customer_info": {"first_name": "a", "last_name": "b", "email": "e@x.co", "mobile": "+962791234567"},
            "payment_method": "cod",
            "payment_status": "pending",
            "status": "pending",
        }
        fake_db.orders.seed(
            {**base, "order_number": "ORD1", "user": "user-1", "created_at": now - timedelta(hours=2)},
            {**base, "order_number": "ORD2", "user": "user-2", "created_at": now - timedelta(hours=1)},
            {**base, "order_number": "ORD3", "user": "user-1", "created_at": now},
        )

    def test_my_orders_requires_auth(self, client: TestClient) -> None:
        response = client.get("/api/v1/orders/my-orders")
        assert response.status_code == 401
        assert response.json()["error"] == "authentication_error"

    def test_my_orders_returns_own_orders_newest_first(
        self, client: TestClient, seeded_orders: None, make_token: Callable[..., str]
    ) -> None:
        response = client.get(
            "/api/v1/orders/my-orders", headers={"Authorization": f"Bearer {make_token(sub='user-1')}"}
        )

        assert response.status_code == 200
        items = response.json()["items"]
        assert [item["order_number"] for item in items] == ["ORD3", "ORD1"]
        assert items[0]["items"][0]["name"] == "Mug"

    def test_all_orders_requires_admin(
        self, client: TestClient, seeded_orders: None, make_token: Callable[..., str]
    ) -> None:
        response = client.get("/api/v1/orders/all", headers={"Authorization": f"Bearer {make_token(role='user')}"})
        assert response.status_code == 403
        assert response.json()["message"] == "Admin access required"

    def test_all_orders_for_admin(
        self, client: TestClient, seeded_orders: None, make_token: Callable[..., str]
    ) -> None:
        response = client.get("/api/v1/orders/all", headers={"Authorization": f"Bearer {make_token(role='admin')}"})

        assert response.status_code == 200
        assert [item["order_number"] for item in response.json()["items"]] == ["ORD3", "ORD2", "ORD1"]


class TestUpdateOrderStatus:
    """Tests for PUT /api/v1/orders/{order_id}/status."""

    def test_admin_delivers_order(
        self, client: TestClient, fake_db: FakeDatabase, tee: ObjectId, make_token: Callable[..., str]
    ) -> None:
        (inventory_id,) = fake_db.inventories.seed({"product": tee, "size": "M", "color": "", "quantity": 9})
        created = client.post(
            "/api/v1/orders", json=order_body([{"product_id": str(tee), "quantity": 2, "size": "M"}])
        ).json()["order"]

        response = client.put(
            f"/api/v1/orders/{created['id']}/status",
            json={"status": "fulfilled"},
            headers={"Authorization": f"Bearer {make_token(sub='admin-1', role='admin')}"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Order status updated successfully"
        assert data["order"]["status"] == "delivered"
        assert fake_db.inventories.get(inventory_id)["quantity"] == 7
        assert fake_db.inventories.get(inventory_id)["updated_by"] == "admin-1"

    def test_non_admin_is_forbidden(self, client: TestClient, make_token: Callable[..., str]) -> None:
        response = client.put(
            f"/api/v1/orders/{ObjectId()}/status",
            json={"status": "shipped"},
            headers={"Authorization": f"Bearer {make_token()}"},
        )
        assert response.status_code == 403

    def test_unknown_order(self, client: TestClient, make_token: Callable[..., str]) -> None:
        response = client.put(
            f"/api/v1/orders/{ObjectId()}/status",
            json={"status": "shipped"},
            headers={"Authorization": f"Bearer {make_token(role='admin')}"},
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Order not found"

    def test_unknown_status_value(self, client: TestClient, make_token: Callable[..., str]) -> None:
        response = client.put(
            f"/api/v1/orders/{ObjectId()}/status",
            json={"status": "refunded"},
            headers={"Authorization": f"Bearer {make_token(role='admin')}"},
        )
        assert response.status_code == 422
