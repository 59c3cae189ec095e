"""
Tests for cart pricing.

Totals are derived from the lines every time; these tests pin the formula
and the way delivery fees and promo codes feed into it.
"""

import pytest

from checkout.pricing import PricingService, cart_subtotal, customization_cost
from domain.models import Address, Cart, CartItem, DeliveryMethod


def make_line(unit_price=10.0, customization=0.0, quantity=1, vendor_id="vendor-001", product_id="item-x"):
    return CartItem(
        id=f"{product_id}-{unit_price}-{customization}",
        product_id=product_id,
        vendor_id=vendor_id,
        name="Item",
        unit_price=unit_price,
        customization_cost=customization,
        quantity=quantity,
    )


NO_COORDS = Address(
    id="addr-x", street="1 Jalan", city="KL", state="WP", postal_code="50000"
)


@pytest.fixture
def pricing(data_store, settings):
    return PricingService(data_store=data_store, settings=settings)


class TestCustomizationCost:
    """Tests for per-unit surcharges."""

    def test_option_costs_add_up(self, data_store):
        item = data_store.get_menu_item("item-nasi-lemak")
        cost = customization_cost(item, {"size": "large", "addons": ["egg", "chicken"]})
        assert cost == 6.5

    def test_group_cost_applies_once(self, data_store):
        """A group-level surcharge applies when the group has a selection."""
        item = data_store.get_menu_item("item-teh-tarik")
        assert customization_cost(item, {"sugar": "less", "ice": "iced"}) == 0.5
        assert customization_cost(item, {"sugar": "less"}) == 0.0

    def test_no_selection_costs_nothing(self, data_store):
        item = data_store.get_menu_item("item-nasi-lemak")
        assert customization_cost(item, None) == 0.0


class TestSummarize:
    """Tests for PricingService.summarize."""

    def test_worked_example(self, pricing):
        """RM10 x 2 with a RM1.50 surcharge and a RM5 quoted fee."""
        cart = Cart(
            customer_id="cust-001",
            items=[make_line(10.0, 1.5, 2)],
            delivery_method=DeliveryMethod.OWN_FLEET,
        )
        summary = pricing.summarize(cart, delivery_fee=5.0)

        assert summary.subtotal == 23.0
        assert summary.tax_amount == 1.38
        assert summary.delivery_fee == 5.0
        assert summary.delivery_fee_source == "quoted"
        assert summary.total_amount == 29.38

    def test_pickup_ignores_quoted_fee(self, pricing):
        """Pickup methods never pay delivery."""
        cart = Cart(customer_id="cust-001", items=[make_line(10.0, 0.0, 2)])
        summary = pricing.summarize(cart, delivery_fee=12.0)

        assert summary.delivery_fee == 0.0
        assert summary.delivery_fee_source == "pickup"
        assert summary.total_amount == 21.2

    def test_fallback_fee_when_no_quote(self, pricing):
        """Without a quote the fallback table prices delivery."""
        cart = Cart(
            customer_id="cust-001",
            items=[make_line(10.0, 0.0, 2)],
            delivery_method=DeliveryMethod.OWN_FLEET,
            delivery_address=NO_COORDS,
        )
        summary = pricing.summarize(cart)

        # base RM10 + 5 km default at RM2/km
        assert summary.delivery_fee == 20.0
        assert summary.delivery_fee_source == "fallback"
        assert summary.total_amount == round(20.0 + 1.2 + 20.0, 2)

    def test_free_delivery_flag(self, pricing):
        cart = Cart(
            customer_id="cust-001",
            items=[make_line(120.0, 0.0, 2)],
            delivery_method=DeliveryMethod.THIRD_PARTY,
            delivery_address=NO_COORDS,
        )
        summary = pricing.summarize(cart)

        assert summary.free_delivery_applied
        assert summary.delivery_fee == 15.0

    def test_promo_discount(self, pricing):
        """SAVE10 takes 10% off a subtotal above RM30."""
        cart = Cart(customer_id="cust-001", items=[make_line(20.0, 0.0, 3)], promo_code="SAVE10")
        summary = pricing.summarize(cart)

        assert summary.discount_amount == 6.0
        assert summary.total_amount == round(60.0 + 3.6 - 6.0, 2)

    def test_inactive_promo_gives_nothing(self, pricing):
        cart = Cart(customer_id="cust-001", items=[make_line(20.0, 0.0, 3)], promo_code="RAYA2024")
        assert pricing.summarize(cart).discount_amount == 0.0

    def test_empty_cart(self, pricing):
        summary = pricing.summarize(Cart(customer_id="cust-001"), delivery_fee=5.0)
        assert summary.total_amount == 0.0
        assert summary.delivery_fee == 0.0
        assert summary.line_count == 0

    def test_subtotal_recomputed_from_lines(self):
        lines = [make_line(3.5, 0.5, 2, product_id="a"), make_line(2.0, 0.0, 3, product_id="b")]
        assert cart_subtotal(lines) == 14.0
