"""
Tests for the JSON-backed data store.
"""

from datetime import datetime

from domain.data_store import DataStore, get_data_store, reset_data_store
from domain.models import Cart, MenuItem, Order, OrderStatus, DeliveryMethod


class TestLoading:
    """Tests for fixture loading."""

    def test_loads_vendors(self, data_store):
        vendor = data_store.get_vendor("vendor-001")
        assert vendor.business_name == "Dapur Makcik Catering"
        assert vendor.minimum_order_amount == 50.0

    def test_menu_items_by_vendor(self, data_store):
        """Menu items can be filtered by vendor."""
        items = data_store.get_menu_items("vendor-002")
        assert {i.vendor_id for i in items} == {"vendor-002"}
        assert len(items) == 3

    def test_promotion_lookup_is_case_insensitive(self, data_store):
        assert data_store.get_promotion("save10").code == "SAVE10"
        assert data_store.get_promotion("NOPE") is None

    def test_missing_fixture_dir_is_empty(self, tmp_path):
        """A directory without fixtures gives empty collections."""
        store = DataStore(data_dir=tmp_path)
        assert store.get_vendors() == []
        assert store.get_order("ord-1001") is None

    def test_unknown_ids_return_none(self, data_store):
        assert data_store.get_customer("cust-999") is None
        assert data_store.get_menu_item("item-999") is None


class TestOrders:
    """Tests for order queries."""

    def test_orders_by_customer_newest_first(self, data_store):
        orders = data_store.get_orders_by_customer("cust-001")
        assert [o.id for o in orders] == ["ord-1005", "ord-1002", "ord-1001"]

    def test_count_scheduled_orders_same_hour(self, data_store):
        """Orders scheduled within the same hour share a slot."""
        slot = datetime(2030, 1, 15, 12, 30)
        assert data_store.count_scheduled_orders("vendor-001", slot) == 1
        assert data_store.count_scheduled_orders("vendor-002", slot) == 0
        assert data_store.count_scheduled_orders("vendor-001", datetime(2030, 1, 15, 13, 0)) == 0

    def test_cancelled_orders_free_capacity(self, data_store):
        order = data_store.get_order("ord-1006")
        order.status = OrderStatus.CANCELLED
        data_store.save_order(order)
        assert data_store.count_scheduled_orders("vendor-001", datetime(2030, 1, 15, 12, 0)) == 0


class TestWrites:
    """Tests for in-memory writes."""

    def test_add_menu_item(self, data_store):
        item = MenuItem(id="item-new", vendor_id="vendor-002", name="Kaya Toast", base_price=3.0)
        data_store.add_menu_item(item)
        assert data_store.get_menu_item("item-new").name == "Kaya Toast"

    def test_set_availability(self, data_store):
        data_store.set_menu_item_availability("item-roti-canai", False)
        assert not data_store.get_menu_item("item-roti-canai").is_available

    def test_carts_live_in_memory(self, data_store):
        cart = data_store.save_cart(Cart(customer_id="cust-002"))
        assert data_store.get_cart("cust-002") is cart
        assert data_store.delete_cart("cust-002")
        assert data_store.get_cart("cust-002") is None

    def test_reload_drops_writes(self, data_store):
        """reload() discards in-memory changes and carts."""
        data_store.save_cart(Cart(customer_id="cust-001"))
        data_store.save_order(Order(
            id="ord-tmp",
            order_number="ORD-TMP",
            customer_id="cust-001",
            vendor_id="vendor-001",
            delivery_method=DeliveryMethod.CUSTOMER_PICKUP,
            subtotal=1.0,
            tax_amount=0.06,
            total_amount=1.06,
        ))
        data_store.reload()
        assert data_store.get_order("ord-tmp") is None
        assert data_store.get_cart("cust-001") is None


class TestSingleton:
    def test_reset_replaces_default(self, data_store):
        assert reset_data_store(data_store) is data_store
        assert get_data_store() is data_store
        reset_data_store()
