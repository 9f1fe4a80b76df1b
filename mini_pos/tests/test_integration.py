import pytest
import concurrent.futures
from fastapi.testclient import TestClient
from sqlalchemy import text
from mini_pos.core.database import Database, get_db
from mini_pos.models.enums import ItemCategory, StockCheck
from mini_pos.models.schemas import CartItem
from main import app


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    del app.dependency_overrides[get_db]


def cart_payload(customer_name, *lines):
    return {
        "customer_name": customer_name,
        "items": [CartItem.from_item(item, quantity).model_dump(mode="json") for item, quantity in lines]
    }


class TestItemEndpoints:
    """Catalog management through the API"""

    def test_create_and_get_item(self, client):
        response = client.post("/api/v1/items/", json={
            "name": "Tea",
            "category": "Main",
            "price": 50,
            "quantity_in_stock": 10
        })
        assert response.status_code == 201
        created = response.json()
        assert created["low_stock_threshold"] == 5
        assert created["is_low_stock"] is False

        response = client.get(f"/api/v1/items/{created['id']}")
        assert response.status_code == 200
        assert response.json()["name"] == "Tea"

    def test_create_duplicate_item(self, client, tea):
        response = client.post("/api/v1/items/", json={
            "name": "Tea",
            "category": "Main",
            "price": 60,
            "quantity_in_stock": 1
        })
        assert response.status_code == 409
        assert "already exists" in response.json()["detail"]

    def test_create_item_invalid_data(self, client):
        response = client.post("/api/v1/items/", json={
            "name": "Tea",
            "category": "Beverages",
            "price": -1,
            "quantity_in_stock": 1
        })
        assert response.status_code == 422

    def test_get_items_sorted_by_name(self, client, tea, cake):
        response = client.get("/api/v1/items/")
        assert response.status_code == 200
        assert [item["name"] for item in response.json()] == ["Chocolate Cake", "Tea"]

    def test_get_nonexistent_item(self, client):
        response = client.get("/api/v1/items/99999")
        assert response.status_code == 404
        assert "Item not found" in response.json()["detail"]

    def test_update_item(self, client, tea):
        response = client.put(f"/api/v1/items/{tea.id}", json={
            "name": "Milk Tea",
            "category": "Desserts",
            "price": 70,
            "quantity_in_stock": 8,
            "low_stock_threshold": 2
        })
        assert response.status_code == 200
        updated = response.json()
        assert updated["name"] == "Milk Tea"
        assert updated["category"] == ItemCategory.DESSERTS.value

    def test_update_nonexistent_item(self, client):
        response = client.put("/api/v1/items/99999", json={
            "name": "Ghost",
            "category": "Main",
            "price": 1,
            "quantity_in_stock": 1
        })
        assert response.status_code == 404

    def test_delete_item(self, client, tea):
        response = client.delete(f"/api/v1/items/{tea.id}")
        assert response.status_code == 200
        assert response.json() == {"deleted": 1}
        assert client.get(f"/api/v1/items/{tea.id}").status_code == 404

    def test_delete_item_in_an_order(self, client, tea):
        client.post("/api/v1/orders/", json=cart_payload("Alice", (tea, 3)))

        response = client.delete(f"/api/v1/items/{tea.id}")
        assert response.status_code == 409

        items = client.get("/api/v1/items/").json()
        assert [item["name"] for item in items] == ["Tea"]


class TestOrderEndpoints:
    """Order commits through the API"""

    def test_create_order_success(self, client, tea):
        response = client.post("/api/v1/orders/", json=cart_payload("Alice", (tea, 3)))
        assert response.status_code == 201

        order = response.json()
        assert order["customer_name"] == "Alice"
        assert order["total_amount"] == 150.0
        assert len(order["lines"]) == 1
        assert order["lines"][0]["item_name"] == "Tea"

        item = client.get(f"/api/v1/items/{tea.id}").json()
        assert item["quantity_in_stock"] == 7

    def test_create_order_insufficient_stock(self, client, tea, cake):
        response = client.post("/api/v1/orders/", json=cart_payload("Alice", (tea, 3), (cake, 5)))
        assert response.status_code == 409

        body = response.json()
        assert "Insufficient stock" in body["detail"]
        assert body["item_name"] == "Chocolate Cake"
        assert body["shortfall"] == 3

        # Nothing from the first line survived
        assert client.get(f"/api/v1/items/{tea.id}").json()["quantity_in_stock"] == 10
        assert client.get("/api/v1/orders/").json() == []

    def test_create_order_blank_customer(self, client, tea):
        response = client.post("/api/v1/orders/", json=cart_payload("   ", (tea, 1)))
        assert response.status_code == 400

    def test_create_order_empty_cart(self, client):
        response = client.post("/api/v1/orders/", json={"customer_name": "Alice", "items": []})
        assert response.status_code == 400

    def test_create_order_unknown_item(self, client, tea):
        payload = cart_payload("Alice", (tea, 1))
        payload["items"][0]["id"] = 99999
        response = client.post("/api/v1/orders/", json=payload)
        assert response.status_code == 404

    def test_get_orders_and_lines(self, client, tea, cake):
        first = client.post("/api/v1/orders/", json=cart_payload("Alice", (tea, 1))).json()
        second = client.post("/api/v1/orders/", json=cart_payload("Bob", (cake, 1), (tea, 2))).json()

        orders = client.get("/api/v1/orders/").json()
        assert [order["id"] for order in orders] == [second["id"], first["id"]]

        response = client.get(f"/api/v1/orders/{second['id']}/lines")
        assert response.status_code == 200
        assert [line["item_name"] for line in response.json()] == ["Chocolate Cake", "Tea"]

        response = client.get(f"/api/v1/orders/{first['id']}")
        assert response.status_code == 200
        assert response.json()["customer_name"] == "Alice"

    def test_get_nonexistent_order(self, client):
        response = client.get("/api/v1/orders/99999")
        assert response.status_code == 404
        assert "Order not found" in response.json()["detail"]

    def test_concurrent_orders_via_api(self, client, make_item):
        """Two requests for 3 of 5 in stock: only one can succeed"""
        headphones = make_item("DJ Headphones", 149.99, 5)
        payload = cart_payload("concurrent", (headphones, 3))

        with concurrent.futures.ThreadPoolExecutor(max_workers=2) as executor:
            futures = [executor.submit(client.post, "/api/v1/orders/", json=payload) for _ in range(2)]
            responses = [future.result() for future in futures]

        assert sorted(response.status_code for response in responses) == [201, 409]
        item = client.get(f"/api/v1/items/{headphones.id}").json()
        assert item["quantity_in_stock"] == 2


class TestHealth:
    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root_endpoint(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "Mini POS API" in response.json()["message"]


class TestStockCheckConfiguration:
    """STOCK_CHECK_MODE decides how the API validates carts"""

    def _stale_cart(self, db, tea):
        payload = cart_payload("Alice", (tea, 3))
        # The cart still says 10 in stock, the row now holds 2
        with db.session() as session:
            session.execute(text("UPDATE items SET quantity_in_stock = 2 WHERE id = :id"), {"id": tea.id})
            session.commit()
        return payload

    def test_live_mode_rejects_stale_cart(self, db, client, tea, monkeypatch):
        monkeypatch.setattr(app.state.settings, "STOCK_CHECK_MODE", StockCheck.LIVE)
        response = client.post("/api/v1/orders/", json=self._stale_cart(db, tea))

        assert response.status_code == 409
        assert client.get(f"/api/v1/items/{tea.id}").json()["quantity_in_stock"] == 2

    def test_snapshot_mode_accepts_stale_cart(self, db, client, tea, monkeypatch):
        monkeypatch.setattr(app.state.settings, "STOCK_CHECK_MODE", StockCheck.SNAPSHOT)
        response = client.post("/api/v1/orders/", json=self._stale_cart(db, tea))

        assert response.status_code == 201
        assert response.json()["total_amount"] == 150.0
        # snapshot - order_quantity is written back
        assert client.get(f"/api/v1/items/{tea.id}").json()["quantity_in_stock"] == 7


class TestApplicationLifespan:
    """The app opens its own database on startup and closes it on shutdown"""

    def test_startup_opens_and_shutdown_closes_database(self, tmp_path, monkeypatch):
        database_url = f"sqlite:///{tmp_path / 'pos.db'}"
        monkeypatch.setattr(app.state.settings, "DATABASE_URL", database_url)

        with TestClient(app) as client:
            handle = app.state.db
            assert handle.is_open
            assert handle.url == database_url

            created = client.post("/api/v1/items/", json={
                "name": "Tea",
                "category": "Main",
                "price": 50,
                "quantity_in_stock": 10
            })
            assert created.status_code == 201
            tea_id = created.json()["id"]

            order = client.post("/api/v1/orders/", json={
                "customer_name": "Alice",
                "items": [dict(created.json(), order_quantity=3)]
            })
            assert order.status_code == 201

        assert not handle.is_open
        assert (tmp_path / "pos.db").exists()

        # Committed data survives the restart
        with Database(database_url) as reopened:
            with reopened.session() as session:
                stock = session.execute(
                    text("SELECT quantity_in_stock FROM items WHERE id = :id"), {"id": tea_id}
                ).scalar_one()
        assert stock == 7
