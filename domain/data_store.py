"""
JSON-backed data store for the checkout service.

This module stands in for the hosted backend the mobile app talks to. It
reads vendors, menus, customers, promotions and historical orders from JSON
fixture files and keeps every write in memory.

Design decisions:
- Fixtures are loaded lazily, one collection at a time
- Write operations update in-memory state only
- Carts are never read from disk; they only live for the session
- Module-level singleton for convenience, fresh instances in tests
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from domain.models import (
    Cart,
    CustomerProfile,
    MenuItem,
    Order,
    OrderStatus,
    Promotion,
    Vendor,
    to_local_time,
)

logger = logging.getLogger("data_store")


class DataStore:
    """
    Central data store that loads and manages JSON fixtures.

    Each collection maps to a table the real backend owns:
    - vendors and menu_items belong to the catalog
    - customers holds profiles, saved addresses and loyalty balances
    - promotions holds promo codes
    - orders holds placed orders
    """

    def __init__(self, data_dir: Optional[Path] = None):
        """
        Initialize the data store.

        Args:
            data_dir: Path to the directory containing JSON fixtures.
                     Defaults to ./data relative to project root.
        """
        if data_dir is None:
            data_dir = Path(__file__).parent.parent / "data"

        self.data_dir = Path(data_dir)

        self._vendors: Optional[dict[str, Vendor]] = None
        self._menu_items: Optional[dict[str, MenuItem]] = None
        self._customers: Optional[dict[str, CustomerProfile]] = None
        self._promotions: Optional[dict[str, Promotion]] = None  # keyed by upper-case code
        self._orders: Optional[dict[str, Order]] = None
        self._carts: dict[str, Cart] = {}  # keyed by customer_id

    # =========================================================================
    # Data Loading (lazy)
    # =========================================================================

    def _load_json(self, filename: str) -> list[dict]:
        """Load a JSON fixture file; a missing file is an empty collection."""
        filepath = self.data_dir / filename
        if not filepath.exists():
            logger.debug(f"Fixture not found, starting empty: {filepath}")
            return []
        with open(filepath, "r", encoding="utf-8") as f:
            return json.load(f)

    def _ensure_vendors_loaded(self):
        if self._vendors is None:
            data = self._load_json("vendors.json")
            self._vendors = {v["id"]: Vendor(**v) for v in data}

    def _ensure_menu_items_loaded(self):
        if self._menu_items is None:
            data = self._load_json("menu_items.json")
            self._menu_items = {m["id"]: MenuItem(**m) for m in data}

    def _ensure_customers_loaded(self):
        if self._customers is None:
            data = self._load_json("customers.json")
            self._customers = {c["id"]: CustomerProfile(**c) for c in data}

    def _ensure_promotions_loaded(self):
        if self._promotions is None:
            data = self._load_json("promotions.json")
            self._promotions = {p["code"].upper(): Promotion(**p) for p in data}

    def _ensure_orders_loaded(self):
        if self._orders is None:
            data = self._load_json("orders.json")
            self._orders = {o["id"]: Order(**o) for o in data}

    # =========================================================================
    # Vendor and Menu Operations
    # =========================================================================

    def get_vendor(self, vendor_id: str) -> Optional[Vendor]:
        self._ensure_vendors_loaded()
        return self._vendors.get(vendor_id)

    def get_vendors(self) -> list[Vendor]:
        self._ensure_vendors_loaded()
        return list(self._vendors.values())

    def get_menu_item(self, item_id: str) -> Optional[MenuItem]:
        self._ensure_menu_items_loaded()
        return self._menu_items.get(item_id)

    def get_menu_items(self, vendor_id: Optional[str] = None) -> list[MenuItem]:
        """All menu items, optionally restricted to one vendor."""
        self._ensure_menu_items_loaded()
        items = list(self._menu_items.values())
        if vendor_id is not None:
            items = [m for m in items if m.vendor_id == vendor_id]
        return items

    def add_menu_item(self, item: MenuItem) -> MenuItem:
        """Insert or replace a menu item (in-memory only)."""
        self._ensure_menu_items_loaded()
        self._menu_items[item.id] = item
        return item

    def set_menu_item_availability(self, item_id: str, is_available: bool) -> Optional[MenuItem]:
        self._ensure_menu_items_loaded()
        item = self._menu_items.get(item_id)
        if item is None:
            return None
        updated = item.model_copy(update={"is_available": is_available})
        self._menu_items[item_id] = updated
        return updated

    # =========================================================================
    # Customer Operations
    # =========================================================================

    def get_customer(self, customer_id: str) -> Optional[CustomerProfile]:
        self._ensure_customers_loaded()
        return self._customers.get(customer_id)

    def get_customers(self) -> list[CustomerProfile]:
        self._ensure_customers_loaded()
        return list(self._customers.values())

    def save_customer(self, customer: CustomerProfile) -> CustomerProfile:
        self._ensure_customers_loaded()
        self._customers[customer.id] = customer
        return customer

    # =========================================================================
    # Promotion Operations
    # =========================================================================

    def get_promotion(self, code: str) -> Optional[Promotion]:
        """Look up a promo code, ignoring case."""
        self._ensure_promotions_loaded()
        return self._promotions.get(code.strip().upper())

    # =========================================================================
    # Order Operations
    # =========================================================================

    def get_order(self, order_id: str) -> Optional[Order]:
        self._ensure_orders_loaded()
        return self._orders.get(order_id)

    def get_orders(self) -> list[Order]:
        self._ensure_orders_loaded()
        return list(self._orders.values())

    def get_orders_by_customer(self, customer_id: str) -> list[Order]:
        """A customer's orders, newest first."""
        self._ensure_orders_loaded()
        orders = [o for o in self._orders.values() if o.customer_id == customer_id]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    def save_order(self, order: Order) -> Order:
        self._ensure_orders_loaded()
        self._orders[order.id] = order
        return order

    def count_scheduled_orders(self, vendor_id: Optional[str], slot_start: datetime) -> int:
        """
        Count live scheduled orders falling in the hour that starts at slot_start.

        Used for slot capacity checks. Cancelled orders do not take capacity.
        """
        self._ensure_orders_loaded()
        hour = to_local_time(slot_start).replace(minute=0, second=0, microsecond=0)
        count = 0
        for order in self._orders.values():
            if order.scheduled_time is None or order.status == OrderStatus.CANCELLED:
                continue
            if vendor_id is not None and order.vendor_id != vendor_id:
                continue
            if to_local_time(order.scheduled_time).replace(minute=0, second=0, microsecond=0) == hour:
                count += 1
        return count

    # =========================================================================
    # Cart Operations
    # =========================================================================

    def get_cart(self, customer_id: str) -> Optional[Cart]:
        return self._carts.get(customer_id)

    def save_cart(self, cart: Cart) -> Cart:
        self._carts[cart.customer_id] = cart
        return cart

    def delete_cart(self, customer_id: str) -> bool:
        return self._carts.pop(customer_id, None) is not None

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def reload(self):
        """Drop every cached collection and in-memory cart."""
        self._vendors = None
        self._menu_items = None
        self._customers = None
        self._promotions = None
        self._orders = None
        self._carts = {}


_default_store: Optional[DataStore] = None


def get_data_store() -> DataStore:
    """Get the default data store singleton."""
    global _default_store
    if _default_store is None:
        _default_store = DataStore()
    return _default_store


def reset_data_store(store: Optional[DataStore] = None) -> DataStore:
    """Replace the default data store (useful for testing)."""
    global _default_store
    _default_store = store or DataStore()
    return _default_store
