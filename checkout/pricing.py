"""
Cart pricing.

Derives every money figure shown on the cart and checkout screens from the
cart's line items:

    subtotal = sum((unit_price + customization_cost) * quantity)
    tax      = round(subtotal * tax_rate, 2)
    total    = round(subtotal + tax + delivery_fee - discount, 2)

Totals are always recomputed from the lines; nothing here caches a total.
"""

import logging
from typing import Optional

from pydantic import BaseModel, Field

from checkout.delivery_fees import DeliveryFeeCalculator
from domain.data_store import DataStore, get_data_store
from domain.models import Cart, CartItem, DeliveryMethod, MenuItem, Selection
from domain.settings import CheckoutSettings, get_settings

logger = logging.getLogger("pricing_service")


class CartSummary(BaseModel):
    """Derived amounts for a cart."""
    vendor_id: Optional[str] = None
    delivery_method: DeliveryMethod = DeliveryMethod.CUSTOMER_PICKUP
    line_count: int = 0
    total_quantity: int = 0
    subtotal: float = 0.0
    tax_rate: float = 0.0
    tax_amount: float = 0.0
    delivery_fee: float = 0.0
    delivery_fee_source: str = Field(
        default="none",
        description="'quoted' when supplied by the caller, 'fallback' when computed locally",
    )
    free_delivery_applied: bool = False
    promo_code: Optional[str] = None
    discount_amount: float = 0.0
    total_amount: float = 0.0


def customization_cost(
    menu_item: MenuItem,
    selections: Optional[dict[str, Selection]],
) -> float:
    """
    Per-unit surcharge for a customization selection.

    A group's flat additional_cost applies once whenever the group has a
    non-empty selection; each selected option adds its own cost. Unknown
    groups and options are ignored here (validation reports them).
    """
    if not selections:
        return 0.0
    total = 0.0
    for group in menu_item.customizations:
        selected = selections.get(group.id)
        if selected is None or selected == "" or selected == []:
            continue
        if group.additional_cost is not None:
            total += group.additional_cost
        selected_ids = selected if isinstance(selected, list) else [selected]
        for option_id in selected_ids:
            option = group.get_option(option_id)
            if option is not None:
                total += option.additional_cost
    return round(total, 2)


def line_subtotal(item: CartItem) -> float:
    return (item.unit_price + item.customization_cost) * item.quantity


def cart_subtotal(items: list[CartItem]) -> float:
    return round(sum(line_subtotal(item) for item in items), 2)


class PricingService:
    """
    Computes cart summaries.

    Example:
        pricing = PricingService(data_store)
        summary = pricing.summarize(cart, delivery_fee=5.0)
        summary.total_amount
    """

    def __init__(
        self,
        data_store: Optional[DataStore] = None,
        settings: Optional[CheckoutSettings] = None,
        fee_calculator: Optional[DeliveryFeeCalculator] = None,
    ):
        self.data_store = data_store or get_data_store()
        self.settings = settings or get_settings()
        self.fee_calculator = fee_calculator or DeliveryFeeCalculator(self.settings)

    def tax_for(self, subtotal: float) -> float:
        return round(subtotal * self.settings.tax_rate, 2)

    def discount_for(self, promo_code: Optional[str], subtotal: float) -> float:
        """Discount from a promo code; unknown or inactive codes give nothing."""
        if not promo_code:
            return 0.0
        promotion = self.data_store.get_promotion(promo_code)
        if promotion is None or not promotion.is_active:
            logger.warning(f"Ignoring unusable promo code on cart: {promo_code}")
            return 0.0
        return promotion.discount_for(subtotal)

    def summarize(self, cart: Cart, delivery_fee: Optional[float] = None) -> CartSummary:
        """
        Price a cart.

        Args:
            cart: The cart to price
            delivery_fee: An externally quoted fee. Ignored for pickup
                methods; when omitted the fallback table is used.
        """
        subtotal = cart_subtotal(cart.items)
        tax = self.tax_for(subtotal)

        method = cart.delivery_method
        fee = 0.0
        fee_source = "none"
        free_delivery = False
        if not cart.is_empty and not method.is_pickup:
            if delivery_fee is not None:
                fee = round(delivery_fee, 2)
                fee_source = "quoted"
            else:
                vendor = self.data_store.get_vendor(cart.vendor_id) if cart.vendor_id else None
                quote = self.fee_calculator.quote(method, subtotal, vendor, cart.delivery_address)
                fee = quote.final_fee
                fee_source = quote.source
                free_delivery = quote.base_fee == 0.0
        elif not cart.is_empty:
            fee_source = "pickup"

        discount = self.discount_for(cart.promo_code, subtotal)
        total = round(subtotal + tax + fee - discount, 2)

        return CartSummary(
            vendor_id=cart.vendor_id,
            delivery_method=method,
            line_count=len(cart.items),
            total_quantity=cart.total_quantity,
            subtotal=subtotal,
            tax_rate=self.settings.tax_rate,
            tax_amount=tax,
            delivery_fee=fee,
            delivery_fee_source=fee_source,
            free_delivery_applied=free_delivery,
            promo_code=cart.promo_code,
            discount_amount=discount,
            total_amount=total,
        )
