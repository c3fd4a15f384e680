import mongomock
from fastapi.testclient import TestClient

from main import create_app
from settings import Settings
from tests.helpers import add_item, signup


def _place(client, order_id="ORD-1", username="alice", **overrides):
    payload = {
        "username": username,
        "OrderId": order_id,
        "Address": {"City": "Bengaluru", "PIN_Code": "560001"},
        "TotalAmount": 1047.0,
        "ProductData": [{"productId": 7, "quantity": 2}],
        "Name": "Alice Liddell",
        "Email": "alice@example.com",
        "Phone_number": "9876543210",
        "BaseAmount": 998.0,
        "CashHandlingCharge": 9.0,
        "DeliveryCharge": 40.0,
        "Tax": 0.0,
        "OrderedDate": "2026-10-01",
        "OrderStatus": "placed",
    }
    payload.update(overrides)
    return client.post("/Order", json=payload).json()


def _cancel(client, order_id="ORD-1", cancel_date="2026-10-02", username="alice"):
    return client.post(
        "/CancelOrder",
        json={"username": username, "OrderId": order_id, "CancelDate": cancel_date},
    ).json()


class TestPlaceOrder:
    def test_places_order(self, client, accounts):
        signup(client)

        data = _place(client)

        assert data == {"message": "Order placed successfully", "success": True}
        orders = accounts.find_one({"Username": "alice"})["Orders"]
        assert len(orders) == 1
        assert orders[0]["OrderId"] == "ORD-1"
        assert orders[0]["OrderStatus"] == "placed"
        assert orders[0]["CancelledDate"] is None

    def test_status_defaults_to_placed(self, client, accounts):
        signup(client)
        client.post("/Order", json={"username": "alice", "OrderId": "ORD-9"})

        assert accounts.find_one({"Username": "alice"})["Orders"][0]["OrderStatus"] == "placed"

    def test_unknown_user(self, client):
        assert _place(client, username="ghost") == {"message": "User not found", "success": False}


class TestCancelOrder:
    def test_cancels_order(self, client, accounts):
        signup(client)
        _place(client, "ORD-1")
        _place(client, "ORD-2")

        data = _cancel(client, "ORD-2")

        assert data == {"message": "Order cancelled successfully", "success": True}
        orders = accounts.find_one({"Username": "alice"})["Orders"]
        assert orders[0]["OrderStatus"] == "placed"
        assert orders[1]["OrderStatus"] == "Cancelled"
        assert orders[1]["CancelledDate"] == "2026-10-02"

    def test_cancelling_again_succeeds_and_resets_the_date(self, client, accounts):
        signup(client)
        _place(client)
        _cancel(client, cancel_date="2026-10-02")

        data = _cancel(client, cancel_date="2026-10-05")

        assert data["success"] is True
        order = accounts.find_one({"Username": "alice"})["Orders"][0]
        assert order["OrderStatus"] == "Cancelled"
        assert order["CancelledDate"] == "2026-10-05"

    def test_cancelling_again_with_the_same_date_succeeds(self, client, accounts):
        signup(client)
        _place(client)
        _cancel(client, cancel_date="2026-10-02")

        data = _cancel(client, cancel_date="2026-10-02")

        assert data == {"message": "Order cancelled successfully", "success": True}
        order = accounts.find_one({"Username": "alice"})["Orders"][0]
        assert order["OrderStatus"] == "Cancelled"
        assert order["CancelledDate"] == "2026-10-02"

    def test_unknown_order(self, client):
        signup(client)
        _place(client)

        data = _cancel(client, "ORD-404")

        assert data == {"message": "Order not found or already cancelled", "success": False}

    def test_order_of_another_user(self, client):
        signup(client)
        signup(client, username="bob", email="bob@example.com")
        _place(client, username="bob")

        assert _cancel(client, username="alice")["success"] is False


class TestOrderListing:
    def test_returns_cart_by_default(self, client):
        signup(client)
        add_item(client, product_id=5)
        _place(client)

        listing = client.get("/Order/alice").json()

        assert [item["productId"] for item in listing] == [5]

    def test_returns_orders_when_configured(self):
        app = create_app(
            Settings(environment="test", static_dir="does-not-exist", orders_route_returns_cart=False),
            client=mongomock.MongoClient(),
        )
        with TestClient(app) as client:
            signup(client)
            add_item(client, product_id=5)
            _place(client, "ORD-1")

            listing = client.get("/Order/alice").json()

        assert [order["OrderId"] for order in listing] == ["ORD-1"]

    def test_unknown_user(self, client):
        assert client.get("/Order/ghost").status_code == 404
