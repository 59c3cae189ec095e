"""
Item and checkout validation.

Two layers of rules live here:

1. Item rules, applied when a product is added to the cart: availability,
   order quantity limits and customization selections.
2. The checkout gate, applied to a whole cart before an order may be
   placed. It returns every error and warning at once so the checkout
   screen can list them; any error disables the place-order button.
"""

import logging
import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from checkout.delivery_fees import DeliveryFeeCalculator
from checkout.pricing import CartSummary, PricingService
from checkout.schedule import ScheduleValidator
from domain.data_store import DataStore, get_data_store
from domain.models import Cart, MenuItem, Selection
from domain.settings import CheckoutSettings, get_settings

logger = logging.getLogger("checkout_validation")

PROMO_CODE_PATTERN = re.compile(r"^[A-Za-z0-9]{3,20}$")


# =============================================================================
# Item rules
# =============================================================================

def _selected_ids(selected: Optional[Selection]) -> list[str]:
    if selected is None:
        return []
    if isinstance(selected, list):
        return [s for s in selected if s]
    return [selected] if selected else []


def customization_errors(
    menu_item: MenuItem,
    selections: Optional[dict[str, Selection]],
) -> list[str]:
    """
    Check a customization selection against a menu item's groups.

    Reports unknown groups and options, multiple options in a
    single-choice group, and required groups left empty.
    """
    selections = selections or {}
    errors = []

    for group_id, selected in selections.items():
        group = menu_item.get_customization(group_id)
        if group is None:
            errors.append(f"Unknown customization '{group_id}' for {menu_item.name}")
            continue
        ids = _selected_ids(selected)
        if len(ids) > 1 and not group.allow_multiple:
            errors.append(f"Only one option may be selected for {group.name}")
        for option_id in ids:
            if group.get_option(option_id) is None:
                errors.append(f"Unknown option '{option_id}' for {group.name}")

    for group in menu_item.customizations:
        if group.is_required and not _selected_ids(selections.get(group.id)):
            errors.append(f"{group.name} is required")

    return errors


def quantity_errors(menu_item: MenuItem, quantity: int) -> list[str]:
    errors = []
    if quantity < menu_item.min_order_quantity:
        errors.append(
            f"Minimum order quantity for {menu_item.name} is {menu_item.min_order_quantity}"
        )
    if menu_item.max_order_quantity is not None and quantity > menu_item.max_order_quantity:
        errors.append(
            f"Maximum order quantity for {menu_item.name} is {menu_item.max_order_quantity}"
        )
    return errors


def item_errors(
    menu_item: MenuItem,
    quantity: int,
    selections: Optional[dict[str, Selection]] = None,
) -> list[str]:
    """Every rule a single cart line must satisfy."""
    errors = []
    if not menu_item.is_available:
        errors.append(f"{menu_item.name} is currently unavailable")
    errors.extend(quantity_errors(menu_item, quantity))
    errors.extend(customization_errors(menu_item, selections))
    return errors


def promo_code_format_error(code: str) -> Optional[str]:
    if not PROMO_CODE_PATTERN.match(code or ""):
        return "Promo code must be 3-20 letters or digits"
    return None


# =============================================================================
# Checkout gate
# =============================================================================

class CheckoutEvaluation(BaseModel):
    """Result of evaluating a cart for checkout."""
    can_checkout: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    summary: CartSummary


class CheckoutValidator:
    """
    Evaluates whether a cart can be checked out.

    Example:
        validator = CheckoutValidator(data_store)
        evaluation = validator.evaluate_checkout(cart)
        if not evaluation.can_checkout:
            print(evaluation.errors)
    """

    def __init__(
        self,
        data_store: Optional[DataStore] = None,
        settings: Optional[CheckoutSettings] = None,
        pricing: Optional[PricingService] = None,
        schedule_validator: Optional[ScheduleValidator] = None,
    ):
        self.data_store = data_store or get_data_store()
        self.settings = settings or get_settings()
        self.fee_calculator = DeliveryFeeCalculator(self.settings)
        self.pricing = pricing or PricingService(
            self.data_store, self.settings, self.fee_calculator
        )
        self.schedule_validator = schedule_validator or ScheduleValidator(
            self.data_store, self.settings
        )

    def evaluate_checkout(
        self,
        cart: Cart,
        now: Optional[datetime] = None,
        delivery_fee: Optional[float] = None,
    ) -> CheckoutEvaluation:
        now = now or datetime.now()
        summary = self.pricing.summarize(cart, delivery_fee=delivery_fee)
        errors: list[str] = []
        warnings: list[str] = []

        if cart.is_empty:
            errors.append("Cart is empty")
            return CheckoutEvaluation(
                can_checkout=False, errors=errors, warnings=warnings, summary=summary
            )

        if len(cart.vendor_ids) > 1:
            errors.append("Cart contains items from more than one vendor")

        self._check_items(cart, errors)
        self._check_vendor(cart, summary, errors)
        self._check_delivery(cart, now, errors, warnings)
        self._check_promo(cart, summary, warnings)

        instructions = cart.special_instructions or ""
        if len(instructions) > self.settings.max_instructions_length:
            errors.append(
                f"Special instructions must be at most "
                f"{self.settings.max_instructions_length} characters"
            )

        if len(cart.items) > self.settings.large_order_line_count:
            warnings.append("Large order: the vendor may need extra preparation time")
        if summary.total_amount > self.settings.high_value_order_total:
            warnings.append("High-value order: please double-check items before paying")

        if errors:
            logger.info(f"Checkout blocked for {cart.customer_id}: {errors}")

        return CheckoutEvaluation(
            can_checkout=not errors,
            errors=errors,
            warnings=warnings,
            summary=summary,
        )

    # =========================================================================
    # Rule groups
    # =========================================================================

    def _check_items(self, cart: Cart, errors: list[str]):
        """Re-check every line against the current menu."""
        for line in cart.items:
            menu_item = self.data_store.get_menu_item(line.product_id)
            if menu_item is None:
                errors.append(f"{line.name} is no longer on the menu")
                continue
            if not menu_item.is_available:
                errors.append(f"{menu_item.name} is currently unavailable")
            for message in customization_errors(menu_item, line.customizations):
                errors.append(f"{menu_item.name}: {message}")

    def _check_vendor(self, cart: Cart, summary: CartSummary, errors: list[str]):
        vendor = self.data_store.get_vendor(cart.vendor_id)
        if vendor is None:
            errors.append(f"Vendor {cart.vendor_id} not found")
            return

        if not vendor.is_accepting_orders:
            errors.append(f"{vendor.business_name} is not accepting orders right now")
        if not vendor.supports(cart.delivery_method):
            errors.append(
                f"{vendor.business_name} does not offer {cart.delivery_method.display_name}"
            )
        if summary.subtotal < vendor.minimum_order_amount:
            errors.append(
                f"Minimum order for {vendor.business_name} is "
                f"{self.settings.currency}{vendor.minimum_order_amount:.2f}"
            )

        if (
            cart.delivery_method.requires_address
            and cart.delivery_address is not None
            and not self.fee_calculator.is_within_radius(vendor, cart.delivery_address)
        ):
            errors.append("Delivery address is outside the vendor's delivery area")

    def _check_delivery(
        self,
        cart: Cart,
        now: datetime,
        errors: list[str],
        warnings: list[str],
    ):
        method = cart.delivery_method
        if method.requires_address and cart.delivery_address is None:
            errors.append(f"A delivery address is required for {method.display_name}")

        if method.requires_schedule:
            if cart.scheduled_time is None:
                errors.append("Please select a delivery time")
            else:
                result = self.schedule_validator.validate(
                    cart.scheduled_time, cart.vendor_id, now=now
                )
                errors.extend(result.errors)
                warnings.extend(result.warnings)
        elif not (
            self.settings.business_open_hour <= now.hour < self.settings.business_close_hour
        ):
            warnings.append("Ordering outside business hours; the vendor may respond late")

    def _check_promo(self, cart: Cart, summary: CartSummary, warnings: list[str]):
        if not cart.promo_code:
            return
        promotion = self.data_store.get_promotion(cart.promo_code)
        if promotion is None or not promotion.is_active:
            warnings.append(f"Promo code {cart.promo_code} is no longer valid")
        elif summary.subtotal < promotion.min_subtotal:
            warnings.append(
                f"Promo code {promotion.code} needs a subtotal of at least "
                f"{self.settings.currency}{promotion.min_subtotal:.2f}"
            )


def evaluate_checkout(
    cart: Cart,
    now: Optional[datetime] = None,
    delivery_fee: Optional[float] = None,
) -> CheckoutEvaluation:
    """Evaluate a cart with the default data store and settings."""
    return CheckoutValidator().evaluate_checkout(cart, now=now, delivery_fee=delivery_fee)
