"""
Cart service.

Owns every change to a customer's cart and publishes a cart event for each
one, so any open screen can refresh without polling.

Rules enforced here:
- A cart only ever holds items from one vendor. Adding another vendor's
  item raises VendorConflictError unless the caller asks to replace the
  cart; items are never silently merged across vendors.
- The same product with the same customization selection shares one line.
- Unit prices follow the bulk tier for the line's current quantity.
"""

import logging
from datetime import datetime
from typing import Optional, Union

from checkout.errors import (
    AddressNotFoundError,
    CartItemNotFoundError,
    CartValidationError,
    CustomerNotFoundError,
    MenuItemNotFoundError,
    PromoCodeError,
    VendorConflictError,
)
from checkout.pricing import CartSummary, PricingService, customization_cost
from checkout.schedule import ScheduleValidator
from checkout.validation import item_errors, promo_code_format_error, quantity_errors
from domain.data_store import DataStore, get_data_store
from domain.models import (
    Address,
    Cart,
    CartItem,
    DeliveryMethod,
    PaymentMethod,
    Selection,
    make_cart_item_id,
    to_local_time,
)
from domain.settings import CheckoutSettings, get_settings
from events.event_bus import EventBus, get_event_bus
from events.events import cart_cleared, cart_item_added, cart_item_removed, cart_updated

logger = logging.getLogger("cart_service")


class CartService:
    """
    Cart operations for the cart and checkout screens.

    Example:
        carts = CartService()
        carts.add_item("cust-001", "item-nasi-lemak", quantity=2,
                       customizations={"size": "large"})
        carts.set_delivery_method("cust-001", DeliveryMethod.OWN_FLEET)
        carts.summarize("cust-001").total_amount
    """

    def __init__(
        self,
        data_store: Optional[DataStore] = None,
        event_bus: Optional[EventBus] = None,
        settings: Optional[CheckoutSettings] = None,
        pricing: Optional[PricingService] = None,
    ):
        self.data_store = data_store or get_data_store()
        self.event_bus = event_bus or get_event_bus()
        self.settings = settings or get_settings()
        self.pricing = pricing or PricingService(self.data_store, self.settings)
        self.schedule_validator = ScheduleValidator(self.data_store, self.settings)

    def get_cart(self, customer_id: str) -> Cart:
        """The customer's cart, created empty on first access."""
        cart = self.data_store.get_cart(customer_id)
        if cart is None:
            cart = self.data_store.save_cart(Cart(customer_id=customer_id))
        return cart

    # =========================================================================
    # Items
    # =========================================================================

    def add_item(
        self,
        customer_id: str,
        product_id: str,
        quantity: int = 1,
        customizations: Optional[dict[str, Selection]] = None,
        notes: Optional[str] = None,
        replace_cart: bool = False,
    ) -> Cart:
        """
        Add a product to the cart.

        Raises:
            MenuItemNotFoundError: Unknown product
            VendorConflictError: The cart holds another vendor's items and
                replace_cart is False
            CartValidationError: Availability, quantity or customization rules fail
        """
        if quantity < 1:
            raise CartValidationError(["Quantity must be at least 1"])

        menu_item = self.data_store.get_menu_item(product_id)
        if menu_item is None:
            logger.error(f"Menu item not found: {product_id}")
            raise MenuItemNotFoundError(f"Menu item {product_id} not found")

        customizations = dict(customizations or {})
        cart = self.get_cart(customer_id)

        if not cart.is_empty and cart.vendor_id != menu_item.vendor_id:
            if not replace_cart:
                logger.warning(
                    f"Vendor conflict for {customer_id}: cart has {cart.vendor_id}, "
                    f"adding {menu_item.vendor_id}"
                )
                raise VendorConflictError(cart.vendor_id, menu_item.vendor_id)
            # Check the new item before dropping anything from the cart
            errors = item_errors(menu_item, quantity, customizations)
            if errors:
                raise CartValidationError(errors)
            self._reset(cart)
            self.event_bus.publish(cart_cleared(customer_id, reason="replaced"))

        line_id = make_cart_item_id(product_id, customizations)
        existing = cart.get_item(line_id)
        new_quantity = quantity + (existing.quantity if existing else 0)

        errors = item_errors(menu_item, new_quantity, customizations)
        if errors:
            logger.info(f"Rejected {product_id} for {customer_id}: {errors}")
            raise CartValidationError(errors)

        if existing is not None:
            existing.quantity = new_quantity
            existing.unit_price = menu_item.effective_price(new_quantity)
            if notes:
                existing.notes = notes
            line = existing
        else:
            line = CartItem(
                id=line_id,
                product_id=product_id,
                vendor_id=menu_item.vendor_id,
                name=menu_item.name,
                unit_price=menu_item.effective_price(new_quantity),
                customization_cost=customization_cost(menu_item, customizations),
                quantity=new_quantity,
                customizations=customizations,
                notes=notes,
            )
            cart.items.append(line)

        cart.touch()
        self.data_store.save_cart(cart)
        logger.info(f"Cart {customer_id}: {menu_item.name} x{line.quantity}")
        self.event_bus.publish(cart_item_added(customer_id, line))
        return cart

    def update_quantity(self, customer_id: str, item_id: str, quantity: int) -> Cart:
        """Set a line's quantity; zero removes the line."""
        if quantity == 0:
            return self.remove_item(customer_id, item_id)
        if quantity < 0:
            raise CartValidationError(["Quantity cannot be negative"])

        cart = self.get_cart(customer_id)
        line = cart.get_item(item_id)
        if line is None:
            raise CartItemNotFoundError(f"Cart item {item_id} not found")

        menu_item = self.data_store.get_menu_item(line.product_id)
        if menu_item is not None:
            errors = quantity_errors(menu_item, quantity)
            if errors:
                raise CartValidationError(errors)
            line.unit_price = menu_item.effective_price(quantity)

        previous = line.quantity
        line.quantity = quantity
        cart.touch()
        self.data_store.save_cart(cart)
        self.event_bus.publish(cart_updated(
            customer_id,
            {"item_id": item_id, "previous_quantity": previous, "quantity": quantity},
        ))
        return cart

    def remove_item(self, customer_id: str, item_id: str) -> Cart:
        cart = self.get_cart(customer_id)
        line = cart.get_item(item_id)
        if line is None:
            raise CartItemNotFoundError(f"Cart item {item_id} not found")

        cart.items.remove(line)
        cart.touch()
        self.data_store.save_cart(cart)
        self.event_bus.publish(cart_item_removed(customer_id, item_id, line.product_id))
        return cart

    def clear_cart(self, customer_id: str, reason: str = "cleared") -> Cart:
        """Empty the cart and forget its delivery, promo and payment choices."""
        cart = self.get_cart(customer_id)
        self._reset(cart)
        self.data_store.save_cart(cart)
        logger.info(f"Cart {customer_id} cleared ({reason})")
        self.event_bus.publish(cart_cleared(customer_id, reason=reason))
        return cart

    def _reset(self, cart: Cart):
        cart.items = []
        cart.delivery_address = None
        cart.scheduled_time = None
        cart.promo_code = None
        cart.special_instructions = None
        cart.payment_method = None
        cart.touch()

    # =========================================================================
    # Delivery
    # =========================================================================

    def set_delivery_method(self, customer_id: str, method: DeliveryMethod) -> Cart:
        """
        Change the delivery method.

        Leaving scheduled delivery clears the scheduled time. When the new
        method needs an address and none is selected, the customer's default
        saved address is filled in.
        """
        cart = self.get_cart(customer_id)
        cart.delivery_method = method
        if not method.requires_schedule:
            cart.scheduled_time = None

        if method.requires_address and cart.delivery_address is None:
            customer = self.data_store.get_customer(customer_id)
            if customer is not None:
                cart.delivery_address = customer.default_address()

        cart.touch()
        self.data_store.save_cart(cart)
        self.event_bus.publish(cart_updated(customer_id, {"delivery_method": method.value}))
        return cart

    def set_delivery_address(self, customer_id: str, address: Union[str, Address]) -> Cart:
        """Select a saved address by id, or use an ad hoc address."""
        if isinstance(address, str):
            customer = self.data_store.get_customer(customer_id)
            if customer is None:
                raise CustomerNotFoundError(f"Customer {customer_id} not found")
            saved = customer.get_address(address)
            if saved is None:
                raise AddressNotFoundError(f"Address {address} not found")
            address = saved

        cart = self.get_cart(customer_id)
        cart.delivery_address = address
        cart.touch()
        self.data_store.save_cart(cart)
        self.event_bus.publish(cart_updated(customer_id, {"delivery_address": address.id}))
        return cart

    def set_scheduled_time(
        self,
        customer_id: str,
        scheduled_time: Optional[datetime],
        now: Optional[datetime] = None,
    ) -> Cart:
        """Pick a delivery slot; None clears it. Invalid slots are rejected."""
        cart = self.get_cart(customer_id)
        if scheduled_time is not None:
            scheduled_time = to_local_time(scheduled_time)
            result = self.schedule_validator.validate(scheduled_time, cart.vendor_id, now=now)
            if not result.is_valid:
                raise CartValidationError(result.errors)

        cart.scheduled_time = scheduled_time
        cart.touch()
        self.data_store.save_cart(cart)
        self.event_bus.publish(cart_updated(
            customer_id,
            {"scheduled_time": scheduled_time.isoformat() if scheduled_time else None},
        ))
        return cart

    # =========================================================================
    # Checkout details
    # =========================================================================

    def set_special_instructions(self, customer_id: str, instructions: Optional[str]) -> Cart:
        limit = self.settings.max_instructions_length
        if instructions and len(instructions) > limit:
            raise CartValidationError([f"Special instructions must be at most {limit} characters"])

        cart = self.get_cart(customer_id)
        cart.special_instructions = instructions or None
        cart.touch()
        self.data_store.save_cart(cart)
        self.event_bus.publish(cart_updated(customer_id, {"special_instructions": bool(instructions)}))
        return cart

    def set_payment_method(self, customer_id: str, method: Optional[PaymentMethod]) -> Cart:
        cart = self.get_cart(customer_id)
        cart.payment_method = method
        cart.touch()
        self.data_store.save_cart(cart)
        self.event_bus.publish(cart_updated(
            customer_id, {"payment_method": method.value if method else None}
        ))
        return cart

    def apply_promo_code(self, customer_id: str, code: str) -> Cart:
        """
        Attach a promo code to the cart.

        Raises:
            PromoCodeError: Malformed, unknown or inactive code
        """
        code = (code or "").strip()
        format_error = promo_code_format_error(code)
        if format_error:
            raise PromoCodeError(format_error)

        promotion = self.data_store.get_promotion(code)
        if promotion is None:
            raise PromoCodeError(f"Promo code {code.upper()} is not valid")
        if not promotion.is_active:
            raise PromoCodeError(f"Promo code {promotion.code} has expired")

        cart = self.get_cart(customer_id)
        cart.promo_code = promotion.code
        cart.touch()
        self.data_store.save_cart(cart)
        self.event_bus.publish(cart_updated(customer_id, {"promo_code": promotion.code}))
        return cart

    def remove_promo_code(self, customer_id: str) -> Cart:
        cart = self.get_cart(customer_id)
        cart.promo_code = None
        cart.touch()
        self.data_store.save_cart(cart)
        self.event_bus.publish(cart_updated(customer_id, {"promo_code": None}))
        return cart

    def summarize(self, customer_id: str, delivery_fee: Optional[float] = None) -> CartSummary:
        return self.pricing.summarize(self.get_cart(customer_id), delivery_fee=delivery_fee)
