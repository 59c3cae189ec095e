"""
Shared pytest fixtures for the checkout service tests.

These fixtures provide consistent test data and fresh service instances so
tests never share carts, orders or event subscriptions.
"""

import csv
import io

import pytest
from datetime import datetime
from pathlib import Path
from openpyxl import Workbook

from checkout.cart import CartService
from checkout.loyalty import LoyaltyService
from checkout.orders import OrderService
from checkout.validation import CheckoutValidator
from domain.channels import NotificationChannels
from domain.data_store import DataStore
from domain.settings import CheckoutSettings
from events.event_bus import EventBus


@pytest.fixture
def data_dir() -> Path:
    """Path to the JSON fixture directory."""
    return Path(__file__).parent.parent / "data"


@pytest.fixture
def data_store(data_dir: Path) -> DataStore:
    """
    Fresh DataStore instance for each test.

    Uses the real JSON fixtures but creates a new instance
    so tests don't interfere with each other.
    """
    return DataStore(data_dir=data_dir)


@pytest.fixture
def settings() -> CheckoutSettings:
    return CheckoutSettings()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def channels() -> NotificationChannels:
    """Fresh NotificationChannels facade for each test."""
    return NotificationChannels()


@pytest.fixture
def cart_service(data_store, event_bus, settings) -> CartService:
    return CartService(data_store=data_store, event_bus=event_bus, settings=settings)


@pytest.fixture
def validator(data_store, settings) -> CheckoutValidator:
    return CheckoutValidator(data_store=data_store, settings=settings)


@pytest.fixture
def order_service(data_store, event_bus, settings, cart_service, validator) -> OrderService:
    return OrderService(
        data_store=data_store,
        event_bus=event_bus,
        settings=settings,
        cart_service=cart_service,
        validator=validator,
    )


@pytest.fixture
def loyalty_service(data_store, event_bus) -> LoyaltyService:
    service = LoyaltyService(data_store=data_store, event_bus=event_bus)
    service.subscribe()
    return service


@pytest.fixture
def weekday_noon() -> datetime:
    """A fixed 'now' inside business hours, used for schedule and checkout checks."""
    return datetime(2030, 1, 14, 12, 0)


# =============================================================================
# Customer Fixtures
# =============================================================================

@pytest.fixture
def aisyah_customer_id() -> str:
    """Gold tier, default home address near vendor-001, email + push for order updates."""
    return "cust-001"


@pytest.fixture
def daniel_customer_id() -> str:
    """Bronze tier, one address without coordinates, all order notifications off."""
    return "cust-002"


@pytest.fixture
def priya_customer_id() -> str:
    """Silver tier, no saved addresses, every order update channel on."""
    return "cust-003"


# =============================================================================
# Catalog Fixtures
# =============================================================================

@pytest.fixture
def nasi_lemak_id() -> str:
    """vendor-001, RM10, required single-choice size group, bulk RM8.50 from 50."""
    return "item-nasi-lemak"


@pytest.fixture
def rendang_id() -> str:
    """vendor-001, RM120 per tray, max 20."""
    return "item-rendang-tray"


@pytest.fixture
def teh_tarik_id() -> str:
    """vendor-002, RM3.50, required sugar level."""
    return "item-teh-tarik"


@pytest.fixture
def roti_canai_id() -> str:
    """vendor-002, RM2, no customizations."""
    return "item-roti-canai"


# =============================================================================
# Menu Import Fixtures
# =============================================================================

def build_xlsx(rows: list[list]) -> bytes:
    """Write rows to the first sheet of a new workbook and return the file bytes."""
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def sample_xlsx(data_dir: Path) -> bytes:
    """data/sample_menu.csv saved as an Excel workbook, blank cells left empty."""
    with open(data_dir / "sample_menu.csv", newline="") as f:
        rows = [[value if value != "" else None for value in row] for row in csv.reader(f)]
    return build_xlsx(rows)


@pytest.fixture
def make_xlsx():
    return build_xlsx
