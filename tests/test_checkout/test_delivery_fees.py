"""
Tests for the fallback delivery fee table.
"""

import pytest

from checkout.delivery_fees import DeliveryFeeCalculator, haversine_km
from domain.models import Address, DeliveryMethod, Vendor
from domain.settings import CheckoutSettings


@pytest.fixture
def calculator(settings):
    return DeliveryFeeCalculator(settings)


class TestFeeTable:
    """Fees at the default 5 km distance."""

    @pytest.mark.parametrize(
        "method, subtotal, expected",
        [
            (DeliveryMethod.THIRD_PARTY, 50.0, 35.0),
            (DeliveryMethod.THIRD_PARTY, 150.0, 30.0),
            (DeliveryMethod.THIRD_PARTY, 250.0, 15.0),
            (DeliveryMethod.OWN_FLEET, 50.0, 20.0),
            (DeliveryMethod.OWN_FLEET, 100.0, 15.0),
            (DeliveryMethod.SCHEDULED, 200.0, 10.0),
        ],
    )
    def test_tiers(self, calculator, method, subtotal, expected):
        assert calculator.quote(method, subtotal).final_fee == expected

    def test_pickup_is_free(self, calculator):
        quote = calculator.quote(DeliveryMethod.CUSTOMER_PICKUP, 10.0)
        assert quote.final_fee == 0.0

    def test_minimum_fee(self):
        """A small positive fee is raised to the minimum."""
        calculator = DeliveryFeeCalculator(CheckoutSettings(default_distance_km=1.0))
        assert calculator.quote(DeliveryMethod.OWN_FLEET, 250.0).final_fee == 5.0

    def test_maximum_fee(self):
        """Long distances are capped."""
        calculator = DeliveryFeeCalculator(CheckoutSettings(default_distance_km=14.0))
        assert calculator.quote(DeliveryMethod.THIRD_PARTY, 10.0).final_fee == 50.0

    def test_breakdown(self, calculator):
        quote = calculator.quote(DeliveryMethod.THIRD_PARTY, 50.0)
        assert quote.base_fee == 20.0
        assert quote.distance_fee == 15.0
        assert quote.distance_km == 5.0


class TestDistance:
    """Tests for vendor-to-address distance."""

    def test_haversine_zero(self):
        assert haversine_km(3.139, 101.6869, 3.139, 101.6869) == 0.0

    def test_haversine_known_distance(self):
        """One degree of latitude is roughly 111 km."""
        assert 110 < haversine_km(3.0, 101.0, 4.0, 101.0) < 112

    def test_default_distance_without_coordinates(self, calculator, data_store):
        vendor = data_store.get_vendor("vendor-001")
        address = Address(id="a", street="s", city="c", state="st", postal_code="1")
        assert calculator.distance_km(vendor, address) == 5.0

    def test_radius(self, calculator, data_store):
        """Home is a short ride from vendor-001; the Subang office is not."""
        vendor = data_store.get_vendor("vendor-001")
        customer = data_store.get_customer("cust-001")
        assert calculator.is_within_radius(vendor, customer.get_address("addr-home"))
        assert not calculator.is_within_radius(vendor, customer.get_address("addr-office"))

    def test_vendor_without_coordinates(self, calculator):
        vendor = Vendor(id="v", business_name="V")
        assert calculator.distance_km(vendor, None) == 5.0
