"""
Shared domain layer for the checkout service.

This package contains the pieces every service depends on:
- Domain models (vendors, menu items, carts, orders, customer profiles)
- Settings for pricing, delivery and scheduling rules
- JSON-backed data store standing in for the hosted backend
- Mock notification channels and order update templates
"""

from domain.models import (
    Address,
    Cart,
    CartItem,
    CustomerProfile,
    CustomizationGroup,
    CustomizationOption,
    DeliveryMethod,
    LoyaltyTier,
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    Promotion,
    Vendor,
)
from domain.settings import CheckoutSettings, get_settings
from domain.data_store import DataStore, get_data_store
from domain.channels import NotificationChannels, NotificationResult

__all__ = [
    "Address",
    "Cart",
    "CartItem",
    "CustomerProfile",
    "CustomizationGroup",
    "CustomizationOption",
    "DeliveryMethod",
    "LoyaltyTier",
    "MenuItem",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "Promotion",
    "Vendor",
    "CheckoutSettings",
    "get_settings",
    "DataStore",
    "get_data_store",
    "NotificationChannels",
    "NotificationResult",
]
