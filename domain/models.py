"""
Domain models for the food-delivery checkout service.

These models describe the catalog (vendors, menu items and their
customization groups), the customer's in-memory cart, placed orders and
customer profiles with loyalty balances.

Design decisions:
- Using Pydantic for validation and serialization
- Money is carried as float and rounded to 2 decimal places wherever a
  derived amount is produced
- Enum helpers (requires_address, is_active, ...) keep the lookup rules next
  to the values they describe
"""

import hashlib
import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union
from pydantic import BaseModel, Field, ConfigDict


def to_local_time(value: datetime) -> datetime:
    """Convert an offset-aware datetime to naive local time; naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


# =============================================================================
# Enums
# =============================================================================

class DeliveryMethod(str, Enum):
    """How an order reaches the customer."""
    CUSTOMER_PICKUP = "customer_pickup"
    SALES_AGENT_PICKUP = "sales_agent_pickup"
    OWN_FLEET = "own_fleet"
    THIRD_PARTY = "third_party"
    SCHEDULED = "scheduled"

    @property
    def display_name(self) -> str:
        return _DELIVERY_METHOD_NAMES[self]

    @property
    def is_pickup(self) -> bool:
        return self in (DeliveryMethod.CUSTOMER_PICKUP, DeliveryMethod.SALES_AGENT_PICKUP)

    @property
    def requires_address(self) -> bool:
        """Every method that sends a driver needs a destination."""
        return not self.is_pickup

    @property
    def requires_schedule(self) -> bool:
        return self == DeliveryMethod.SCHEDULED


_DELIVERY_METHOD_NAMES = {
    DeliveryMethod.CUSTOMER_PICKUP: "Pickup",
    DeliveryMethod.SALES_AGENT_PICKUP: "Sales Agent Pickup",
    DeliveryMethod.OWN_FLEET: "Own Fleet Delivery",
    DeliveryMethod.THIRD_PARTY: "Courier Delivery",
    DeliveryMethod.SCHEDULED: "Scheduled Delivery",
}


class OrderStatus(str, Enum):
    """
    Order lifecycle states.

    Orders only move forward along this list, or to CANCELLED before they
    are delivered.
    """
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @property
    def is_active(self) -> bool:
        return self not in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)

    @property
    def is_terminal(self) -> bool:
        return not self.is_active


# Forward order of the non-cancelled states
ORDER_STATUS_SEQUENCE: list[OrderStatus] = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
]


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    FPX = "fpx"
    GRABPAY = "grabpay"
    TOUCHNGO = "touchngo"
    CREDIT_CARD = "credit_card"
    WALLET = "wallet"
    CASH = "cash"


class LoyaltyTier(str, Enum):
    """Loyalty tiers and their points multipliers."""
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"
    DIAMOND = "diamond"

    @property
    def multiplier(self) -> float:
        return _TIER_MULTIPLIERS[self]


_TIER_MULTIPLIERS = {
    LoyaltyTier.BRONZE: 1.0,
    LoyaltyTier.SILVER: 1.2,
    LoyaltyTier.GOLD: 1.5,
    LoyaltyTier.PLATINUM: 2.0,
    LoyaltyTier.DIAMOND: 3.0,
}


# =============================================================================
# Catalog
# =============================================================================

class Vendor(BaseModel):
    """A restaurant or caterer. Carts may only ever hold one vendor's items."""
    id: str = Field(..., description="Unique vendor identifier")
    business_name: str = Field(..., description="Display name")
    latitude: Optional[float] = Field(default=None)
    longitude: Optional[float] = Field(default=None)
    minimum_order_amount: float = Field(default=0.0, ge=0)
    delivery_methods: list[DeliveryMethod] = Field(
        default_factory=lambda: list(DeliveryMethod),
        description="Delivery methods this vendor accepts",
    )
    is_accepting_orders: bool = Field(default=True)

    def supports(self, method: DeliveryMethod) -> bool:
        return method in self.delivery_methods


class CustomizationOption(BaseModel):
    id: str
    name: str
    additional_cost: float = Field(default=0.0, ge=0)


class CustomizationGroup(BaseModel):
    """
    A per-product option group such as "Size" or "Add-ons".

    Required groups must have a non-empty selection before the item can be
    added or checked out. Single-choice groups accept exactly one option id.
    """
    id: str
    name: str
    is_required: bool = Field(default=False)
    allow_multiple: bool = Field(default=False)
    additional_cost: Optional[float] = Field(
        default=None,
        ge=0,
        description="Flat surcharge applied whenever the group has a selection",
    )
    options: list[CustomizationOption] = Field(default_factory=list)

    def get_option(self, option_id: str) -> Optional[CustomizationOption]:
        for option in self.options:
            if option.id == option_id:
                return option
        return None


class MenuItem(BaseModel):
    """A product on a vendor's menu."""
    id: str = Field(..., description="Unique menu item identifier")
    vendor_id: str = Field(..., description="Owning vendor")
    name: str
    description: Optional[str] = Field(default=None)
    category: str = Field(default="General")
    base_price: float = Field(..., ge=0)
    unit: str = Field(default="pax")
    is_available: bool = Field(default=True)
    min_order_quantity: int = Field(default=1, ge=1)
    max_order_quantity: Optional[int] = Field(default=None, ge=1)
    bulk_price: Optional[float] = Field(default=None, ge=0)
    bulk_min_quantity: Optional[int] = Field(default=None, ge=1)
    preparation_time_minutes: Optional[int] = Field(default=None, ge=0)
    is_halal: bool = Field(default=False)
    is_vegetarian: bool = Field(default=False)
    is_vegan: bool = Field(default=False)
    is_spicy: bool = Field(default=False)
    spicy_level: Optional[int] = Field(default=None, ge=1, le=5)
    allergens: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    customizations: list[CustomizationGroup] = Field(default_factory=list)

    def effective_price(self, quantity: int) -> float:
        """Unit price for a quantity, honouring the bulk tier when configured."""
        if (
            self.bulk_price is not None
            and self.bulk_min_quantity is not None
            and quantity >= self.bulk_min_quantity
        ):
            return self.bulk_price
        return self.base_price

    def is_valid_quantity(self, quantity: int) -> bool:
        if quantity < self.min_order_quantity:
            return False
        if self.max_order_quantity is not None and quantity > self.max_order_quantity:
            return False
        return True

    def get_customization(self, group_id: str) -> Optional[CustomizationGroup]:
        for group in self.customizations:
            if group.id == group_id:
                return group
        return None


# =============================================================================
# Addresses and customers
# =============================================================================

class Address(BaseModel):
    id: str
    label: str = Field(default="Home")
    street: str
    city: str
    state: str
    postal_code: str
    country: str = Field(default="Malaysia")
    latitude: Optional[float] = Field(default=None)
    longitude: Optional[float] = Field(default=None)
    is_default: bool = Field(default=False)

    @property
    def full_address(self) -> str:
        return f"{self.street}, {self.city}, {self.state} {self.postal_code}, {self.country}"


class ChannelPreferences(BaseModel):
    """Per-channel opt-in settings for one notification type."""
    email: bool = Field(default=True)
    sms: bool = Field(default=False)
    push: bool = Field(default=True)


class NotificationPreferences(BaseModel):
    """Notification toggles shown on the profile settings screen."""
    order_updates: ChannelPreferences = Field(
        default_factory=lambda: ChannelPreferences(email=True, sms=True, push=True)
    )
    promotions: ChannelPreferences = Field(
        default_factory=lambda: ChannelPreferences(email=False, sms=False, push=False)
    )

    def get_channels_for_type(self, notification_type: str) -> list[str]:
        """
        Channels the customer wants for a notification type.
        Returns an empty list for unknown types.
        """
        pref = getattr(self, notification_type, None)
        if not isinstance(pref, ChannelPreferences):
            return []
        return [channel for channel in ("email", "sms", "push") if getattr(pref, channel)]


class DietaryPreferences(BaseModel):
    halal: bool = Field(default=False)
    vegetarian: bool = Field(default=False)
    vegan: bool = Field(default=False)


class CustomerProfile(BaseModel):
    """
    Customer identity plus loyalty balance and running totals.

    Points are credited once per delivered order; totals are only ever
    increased by the loyalty service.
    """
    id: str
    name: str
    email: str
    phone: str
    tier: LoyaltyTier = Field(default=LoyaltyTier.BRONZE)
    loyalty_points: int = Field(default=0, ge=0)
    total_orders: int = Field(default=0, ge=0)
    total_spent: float = Field(default=0.0, ge=0)
    dietary_preferences: DietaryPreferences = Field(default_factory=DietaryPreferences)
    notification_preferences: NotificationPreferences = Field(
        default_factory=NotificationPreferences
    )
    addresses: list[Address] = Field(default_factory=list)

    def get_address(self, address_id: str) -> Optional[Address]:
        for address in self.addresses:
            if address.id == address_id:
                return address
        return None

    def default_address(self) -> Optional[Address]:
        """The address flagged default, or the first saved one."""
        for address in self.addresses:
            if address.is_default:
                return address
        return self.addresses[0] if self.addresses else None


# =============================================================================
# Promotions
# =============================================================================

class Promotion(BaseModel):
    code: str
    description: Optional[str] = Field(default=None)
    percent_off: Optional[float] = Field(default=None, gt=0, le=100)
    amount_off: Optional[float] = Field(default=None, gt=0)
    min_subtotal: float = Field(default=0.0, ge=0)
    max_discount: Optional[float] = Field(default=None, gt=0)
    is_active: bool = Field(default=True)

    def discount_for(self, subtotal: float) -> float:
        """Discount for a subtotal; zero below the minimum, never above the subtotal."""
        if subtotal < self.min_subtotal:
            return 0.0
        discount = 0.0
        if self.percent_off is not None:
            discount = subtotal * self.percent_off / 100
        elif self.amount_off is not None:
            discount = self.amount_off
        if self.max_discount is not None:
            discount = min(discount, self.max_discount)
        return round(min(discount, subtotal), 2)


# =============================================================================
# Cart
# =============================================================================

Selection = Union[str, list[str]]


def make_cart_item_id(product_id: str, customizations: Optional[dict[str, Selection]]) -> str:
    """
    Stable cart-line id for a product and a customization selection.

    The same product with the same selection always maps to the same line,
    regardless of the order options were picked in.
    """
    normalized: dict[str, Any] = {}
    for group_id, selected in (customizations or {}).items():
        if isinstance(selected, list):
            normalized[group_id] = sorted(selected)
        else:
            normalized[group_id] = selected
    digest = hashlib.sha1(
        json.dumps(normalized, sort_keys=True).encode("utf-8")
    ).hexdigest()[:10]
    return f"{product_id}-{digest}"


class CartItem(BaseModel):
    """A single line in the cart."""
    id: str = Field(..., description="Cart-line id (product + selection)")
    product_id: str
    vendor_id: str
    name: str
    unit_price: float = Field(..., ge=0, description="Effective unit price before surcharges")
    customization_cost: float = Field(default=0.0, ge=0, description="Per-unit surcharge")
    quantity: int = Field(..., ge=1)
    customizations: dict[str, Selection] = Field(default_factory=dict)
    notes: Optional[str] = Field(default=None)
    added_at: datetime = Field(default_factory=datetime.now)

    @property
    def line_total(self) -> float:
        return round((self.unit_price + self.customization_cost) * self.quantity, 2)


class Cart(BaseModel):
    """
    Shopping cart for one customer.

    Holds line items from a single vendor, the chosen delivery method and
    the details that method needs (address, scheduled time).
    """
    customer_id: str
    items: list[CartItem] = Field(default_factory=list)
    delivery_method: DeliveryMethod = Field(default=DeliveryMethod.CUSTOMER_PICKUP)
    delivery_address: Optional[Address] = Field(default=None)
    scheduled_time: Optional[datetime] = Field(default=None)
    promo_code: Optional[str] = Field(default=None)
    special_instructions: Optional[str] = Field(default=None)
    payment_method: Optional[PaymentMethod] = Field(default=None)
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def vendor_id(self) -> Optional[str]:
        return self.items[0].vendor_id if self.items else None

    @property
    def vendor_ids(self) -> set[str]:
        return {item.vendor_id for item in self.items}

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    def get_item(self, item_id: str) -> Optional[CartItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def touch(self) -> None:
        self.updated_at = datetime.now()


# =============================================================================
# Orders
# =============================================================================

class OrderItem(BaseModel):
    product_id: str
    name: str
    unit_price: float = Field(..., ge=0)
    customization_cost: float = Field(default=0.0, ge=0)
    quantity: int = Field(..., ge=1)
    line_total: float = Field(..., ge=0)
    customizations: dict[str, Selection] = Field(default_factory=dict)
    notes: Optional[str] = Field(default=None)


class Order(BaseModel):
    """
    A placed order: a frozen snapshot of the cart plus lifecycle state.

    Amounts are copied from the cart summary at checkout and never
    recomputed afterwards.
    """
    id: str
    order_number: str
    customer_id: str
    vendor_id: str
    items: list[OrderItem] = Field(default_factory=list)
    delivery_method: DeliveryMethod
    delivery_address: Optional[Address] = Field(default=None)
    scheduled_time: Optional[datetime] = Field(default=None)
    subtotal: float = Field(..., ge=0)
    tax_amount: float = Field(..., ge=0)
    delivery_fee: float = Field(default=0.0, ge=0)
    discount_amount: float = Field(default=0.0, ge=0)
    total_amount: float = Field(..., ge=0)
    promo_code: Optional[str] = Field(default=None)
    status: OrderStatus = Field(default=OrderStatus.PENDING)
    payment_method: Optional[PaymentMethod] = Field(default=None)
    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING)
    payment_reference: Optional[str] = Field(default=None)
    special_instructions: Optional[str] = Field(default=None)
    cancellation_reason: Optional[str] = Field(default=None)
    assigned_driver_id: Optional[str] = Field(default=None)
    points_credited: bool = Field(default=False, description="Loyalty points have been credited for this order")
    status_history: dict[str, datetime] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: Optional[datetime] = Field(default=None)

    model_config = ConfigDict(validate_assignment=True)
