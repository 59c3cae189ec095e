"""
Tests for loyalty points.
"""

import pytest

from checkout.errors import CustomerNotFoundError, InsufficientPointsError
from checkout.loyalty import LoyaltyService, points_for_amount
from domain.models import LoyaltyTier, OrderStatus
from events.event_bus import EventBus
from events.events import order_status_changed


class TestPointsForAmount:
    """One point per whole ringgit, scaled by tier and rounded down."""

    @pytest.mark.parametrize(
        "amount, tier, expected",
        [
            (100.99, LoyaltyTier.BRONZE, 100),
            (85.84, LoyaltyTier.GOLD, 127),
            (41.78, LoyaltyTier.GOLD, 61),
            (10.0, LoyaltyTier.DIAMOND, 30),
            (0.99, LoyaltyTier.PLATINUM, 0),
        ],
    )
    def test_points(self, amount, tier, expected):
        assert points_for_amount(amount, tier) == expected


class TestCrediting:
    """Tests for crediting delivered orders."""

    def test_credit_order(self, loyalty_service, data_store):
        points = loyalty_service.credit_order("ord-1001")

        customer = data_store.get_customer("cust-001")
        assert points == 127
        assert customer.loyalty_points == 1327
        assert customer.total_orders == 15
        assert customer.total_spent == 1946.34

    def test_credit_is_idempotent(self, loyalty_service, data_store):
        loyalty_service.credit_order("ord-1001")
        assert loyalty_service.credit_order("ord-1001") == 0
        assert data_store.get_customer("cust-001").loyalty_points == 1327
        assert data_store.get_order("ord-1001").points_credited

    def test_replayed_event_after_restart(self, loyalty_service, order_service, data_store):
        """A fresh loyalty service on the same store does not credit an order twice."""
        order_service.update_status("ord-1002", OrderStatus.DELIVERED)
        loyalty_service.unsubscribe()

        bus = EventBus()
        LoyaltyService(data_store=data_store, event_bus=bus).subscribe()
        bus.publish(order_status_changed(data_store.get_order("ord-1002"), "out_for_delivery"))

        assert data_store.get_customer("cust-001").loyalty_points == 1261

    def test_delivered_event_credits(self, loyalty_service, order_service, data_store):
        """Delivering an order through the order service credits points."""
        order_service.update_status("ord-1002", OrderStatus.DELIVERED)
        assert data_store.get_customer("cust-001").loyalty_points == 1261

    def test_other_statuses_ignored(self, loyalty_service, order_service, data_store):
        order_service.update_status("ord-1003", OrderStatus.CONFIRMED)
        assert data_store.get_customer("cust-002").loyalty_points == 50

    def test_unsubscribed_service_does_nothing(self, data_store, event_bus, order_service):
        service = LoyaltyService(data_store=data_store, event_bus=event_bus)
        service.subscribe()
        service.subscribe()
        assert event_bus.get_subscriber_count("OrderStatusChanged") == 1

        service.unsubscribe()
        order_service.update_status("ord-1002", OrderStatus.DELIVERED)
        assert data_store.get_customer("cust-001").loyalty_points == 1200


class TestRedemption:
    """Tests for redeem_points."""

    def test_redeem(self, loyalty_service):
        customer = loyalty_service.redeem_points("cust-001", 200)
        assert customer.loyalty_points == 1000

    def test_insufficient(self, loyalty_service):
        with pytest.raises(InsufficientPointsError) as exc_info:
            loyalty_service.redeem_points("cust-002", 51)
        assert exc_info.value.details == {"available": 50, "requested": 51}

    def test_non_positive(self, loyalty_service):
        with pytest.raises(ValueError):
            loyalty_service.redeem_points("cust-001", 0)

    def test_unknown_customer(self, loyalty_service):
        with pytest.raises(CustomerNotFoundError):
            loyalty_service.get_summary("cust-999")

    def test_summary(self, loyalty_service):
        summary = loyalty_service.get_summary("cust-001")
        assert summary.tier == LoyaltyTier.GOLD
        assert summary.multiplier == 1.5
        assert summary.loyalty_points == 1200
