"""
Tests for the checkout API.

These tests drive the FastAPI routes end to end against a fresh data store
and event bus per test.
"""

from datetime import date, datetime, time, timedelta

import pytest
from fastapi.testclient import TestClient

from api.main import app, reset_api_state

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@pytest.fixture
def api_client(data_store, channels):
    """Create a test client with fresh state."""
    reset_api_state(data_store=data_store, channels=channels)
    yield TestClient(app)
    reset_api_state()


def add_rendang(client, customer_id="cust-001", quantity=1):
    return client.post(
        f"/customers/{customer_id}/cart/items",
        json={"product_id": "item-rendang-tray", "quantity": quantity},
    )


class TestHealthEndpoint:
    def test_health_check(self, api_client):
        """Test that health endpoint returns healthy."""
        response = api_client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "food-delivery-checkout"}


class TestCartEndpoints:
    """Tests for /customers/{id}/cart."""

    def test_empty_cart(self, api_client):
        response = api_client.get("/customers/cust-001/cart")

        assert response.status_code == 200
        body = response.json()
        assert body["cart"]["items"] == []
        assert body["summary"]["total_amount"] == 0.0

    def test_add_item(self, api_client):
        response = api_client.post("/customers/cust-001/cart/items", json={
            "product_id": "item-nasi-lemak",
            "quantity": 2,
            "customizations": {"size": "large", "addons": ["egg"]},
        })

        assert response.status_code == 200
        body = response.json()
        assert body["cart"]["items"][0]["customization_cost"] == 2.5
        assert body["summary"]["subtotal"] == 25.0

    def test_validation_error(self, api_client):
        response = api_client.post("/customers/cust-001/cart/items", json={"product_id": "item-nasi-lemak"})

        assert response.status_code == 422
        assert response.json()["errors"] == ["Size is required"]
        assert response.json()["error"] == "CartValidationError"

    def test_vendor_conflict(self, api_client):
        """Mixing vendors is a 409 that names both vendors."""
        add_rendang(api_client)
        response = api_client.post("/customers/cust-001/cart/items", json={"product_id": "item-roti-canai"})

        assert response.status_code == 409
        body = response.json()
        assert body["current_vendor_id"] == "vendor-001"
        assert body["new_vendor_id"] == "vendor-002"

    def test_replace_cart(self, api_client):
        add_rendang(api_client)
        response = api_client.post(
            "/customers/cust-001/cart/items",
            json={"product_id": "item-roti-canai", "replace_cart": True},
        )
        assert response.status_code == 200
        assert response.json()["cart"]["items"][0]["product_id"] == "item-roti-canai"

    def test_update_and_remove(self, api_client):
        item_id = add_rendang(api_client).json()["cart"]["items"][0]["id"]

        response = api_client.patch(f"/customers/cust-001/cart/items/{item_id}", json={"quantity": 3})
        assert response.json()["summary"]["subtotal"] == 360.0

        response = api_client.delete(f"/customers/cust-001/cart/items/{item_id}")
        assert response.json()["cart"]["items"] == []

    def test_unknown_line(self, api_client):
        response = api_client.delete("/customers/cust-001/cart/items/nope")
        assert response.status_code == 404

    def test_unknown_customer(self, api_client):
        assert api_client.get("/customers/cust-999/cart").status_code == 404

    def test_delivery_with_saved_address(self, api_client):
        add_rendang(api_client)
        response = api_client.put("/customers/cust-001/cart/delivery", json={
            "delivery_method": "third_party",
            "address_id": "addr-home",
        })

        body = response.json()
        assert body["cart"]["delivery_address"]["id"] == "addr-home"
        assert body["summary"]["delivery_fee_source"] == "fallback"

    def test_scheduled_time_with_offset(self, api_client):
        """An ISO time carrying a UTC offset is stored as local time."""
        add_rendang(api_client)
        local = datetime.combine(date.today() + timedelta(days=2), time(12, 0))
        response = api_client.put("/customers/cust-001/cart/delivery", json={
            "delivery_method": "scheduled",
            "scheduled_time": local.astimezone().isoformat(),
        })

        assert response.status_code == 200
        assert response.json()["cart"]["scheduled_time"] == local.isoformat()

    def test_past_scheduled_time_with_offset(self, api_client):
        add_rendang(api_client)
        past = datetime.combine(date.today() - timedelta(days=1), time(12, 0)).astimezone()
        response = api_client.put("/customers/cust-001/cart/delivery", json={
            "delivery_method": "scheduled",
            "scheduled_time": past.isoformat(),
        })

        assert response.status_code == 422
        assert response.json()["errors"] == ["Scheduled time cannot be in the past"]

    def test_promo(self, api_client):
        add_rendang(api_client)
        response = api_client.put("/customers/cust-001/cart/promo", json={"code": "SAVE10"})
        assert response.json()["summary"]["discount_amount"] == 12.0

        response = api_client.put("/customers/cust-001/cart/promo", json={"code": "RAYA2024"})
        assert response.status_code == 422
        assert response.json()["detail"] == "Promo code RAYA2024 has expired"

        response = api_client.delete("/customers/cust-001/cart/promo")
        assert response.json()["cart"]["promo_code"] is None

    def test_summary_with_quoted_fee(self, api_client):
        add_rendang(api_client)
        api_client.put("/customers/cust-001/cart/delivery", json={"delivery_method": "own_fleet"})

        response = api_client.get("/customers/cust-001/cart/summary", params={"delivery_fee": 8.0})

        assert response.json()["delivery_fee"] == 8.0
        assert response.json()["total_amount"] == 135.2


class TestCheckoutEndpoints:
    """Tests for checkout evaluation and order placement."""

    def test_evaluate_blocked(self, api_client):
        response = api_client.get("/customers/cust-001/checkout")

        assert response.status_code == 200
        assert response.json()["can_checkout"] is False
        assert response.json()["errors"] == ["Cart is empty"]

    def test_place_order(self, api_client, channels):
        add_rendang(api_client)
        api_client.put("/customers/cust-001/cart/details", json={
            "special_instructions": "Call on arrival",
            "payment_method": "fpx",
        })

        response = api_client.post("/customers/cust-001/checkout", json={})

        assert response.status_code == 201
        order = response.json()
        assert order["status"] == "pending"
        assert order["payment_method"] == "fpx"
        assert order["special_instructions"] == "Call on arrival"
        assert order["total_amount"] == 127.2
        assert channels.email.find_message_to("aisyah@example.com") is not None

        cart = api_client.get("/customers/cust-001/cart").json()["cart"]
        assert cart["items"] == []

    def test_place_order_blocked(self, api_client):
        response = api_client.post("/customers/cust-001/checkout", json={})

        assert response.status_code == 422
        assert response.json()["error"] == "CheckoutNotAllowedError"


class TestOrderEndpoints:
    """Tests for /orders."""

    def test_list_active(self, api_client):
        response = api_client.get("/customers/cust-001/orders", params={"active_only": True})
        assert [o["id"] for o in response.json()] == ["ord-1005", "ord-1002"]

    def test_get_and_track(self, api_client):
        assert api_client.get("/orders/ord-1002").json()["status"] == "out_for_delivery"

        track = api_client.get("/orders/ord-1002/track").json()
        assert track["display_text"] == "Out for Delivery"
        assert track["actions"] == ["track", "contact_driver"]

    def test_unknown_order(self, api_client):
        assert api_client.get("/orders/ord-nope").status_code == 404

    def test_status_update_credits_points(self, api_client):
        response = api_client.post("/orders/ord-1002/status", json={"status": "delivered"})

        assert response.status_code == 200
        loyalty = api_client.get("/customers/cust-001/loyalty").json()
        assert loyalty["loyalty_points"] == 1261

    def test_invalid_transition(self, api_client):
        response = api_client.post("/orders/ord-1003/status", json={"status": "ready"})

        assert response.status_code == 409
        assert response.json()["current_status"] == "pending"

    def test_cancel_with_default_reason(self, api_client):
        response = api_client.post("/orders/ord-1003/cancel", json={})
        assert response.json()["cancellation_reason"] == "Cancelled by customer"

    def test_payment(self, api_client):
        response = api_client.post("/orders/ord-1003/payment", json={"succeeded": True, "reference": "CASH-9"})
        assert response.json()["payment_status"] == "paid"

    def test_reorder(self, api_client):
        response = api_client.post("/orders/ord-1004/reorder")

        body = response.json()
        assert body["added"] == ["Beef Rendang Tray"]
        assert body["skipped"] == ["Curry Puff"]


class TestLoyaltyEndpoints:
    def test_redeem(self, api_client):
        response = api_client.post("/customers/cust-001/loyalty/redeem", json={"points": 200})
        assert response.json()["loyalty_points"] == 1000

    def test_redeem_too_many(self, api_client):
        response = api_client.post("/customers/cust-002/loyalty/redeem", json={"points": 500})
        assert response.status_code == 422
        assert response.json()["available"] == 50

    def test_redeem_must_be_positive(self, api_client):
        response = api_client.post("/customers/cust-001/loyalty/redeem", json={"points": 0})
        assert response.status_code == 422


class TestVendorEndpoints:
    """Tests for slots and menu import."""

    def test_slots_tomorrow(self, api_client):
        tomorrow = date.today() + timedelta(days=1)
        response = api_client.get("/vendors/vendor-002/schedule/slots", params={"day": tomorrow.isoformat()})

        assert response.status_code == 200
        assert len(response.json()["slots"]) == 28

    def test_slots_unknown_vendor(self, api_client):
        response = api_client.get("/vendors/vendor-999/schedule/slots", params={"day": "2030-01-15"})
        assert response.status_code == 404

    def test_import_preview_filter(self, api_client, data_dir):
        content = (data_dir / "sample_menu.csv").read_text()
        response = api_client.post(
            "/vendors/vendor-001/menu-import/preview",
            params={"filter": "errors"},
            json={"filename": "sample_menu.csv", "content": content},
        )

        body = response.json()
        assert body["total_rows"] == 5
        assert body["warning_rows"] == 2
        assert [r["row_number"] for r in body["rows"]] == [4, 5]

    def test_import_commit(self, api_client, data_dir, data_store):
        content = (data_dir / "sample_menu.csv").read_text()
        response = api_client.post(
            "/vendors/vendor-001/menu-import/commit",
            json={"filename": "sample_menu.csv", "content": content},
        )

        assert response.status_code == 201
        body = response.json()
        assert len(body["created_item_ids"]) == 3
        assert body["skipped_rows"] == [4, 5]
        assert data_store.get_menu_item(body["created_item_ids"][0]).name == "Mee Goreng Mamak"

    def test_import_unsupported_format(self, api_client):
        response = api_client.post(
            "/vendors/vendor-001/menu-import/preview",
            json={"filename": "menu.xls", "content": "..."},
        )
        assert response.status_code == 415

    def test_upload_xlsx_preview(self, api_client, sample_xlsx):
        response = api_client.post(
            "/vendors/vendor-001/menu-import/upload/preview",
            params={"filter": "warnings"},
            files={"file": ("sample_menu.xlsx", sample_xlsx, XLSX_CONTENT_TYPE)},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["file_format"] == "xlsx"
        assert body["valid_rows"] == 3
        assert [r["name"] for r in body["rows"]] == ["Kuih Lapis", "Sayur Lodeh"]

    def test_upload_xlsx_commit(self, api_client, sample_xlsx, data_store):
        response = api_client.post(
            "/vendors/vendor-001/menu-import/upload/commit",
            files={"file": ("sample_menu.xlsx", sample_xlsx, XLSX_CONTENT_TYPE)},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["skipped_rows"] == [4, 5]
        assert data_store.get_menu_item(body["created_item_ids"][2]).name == "Sayur Lodeh"

    def test_upload_corrupt_workbook(self, api_client):
        response = api_client.post(
            "/vendors/vendor-001/menu-import/upload/preview",
            files={"file": ("menu.xlsx", b"not a workbook", XLSX_CONTENT_TYPE)},
        )
        assert response.status_code == 422
        assert response.json()["error"] == "MenuFileError"
