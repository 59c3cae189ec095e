"""
Tests for order status presentation.
"""

import pytest

from checkout.order_status import STATUS_DISPLAY, OrderAction, allowed_actions, describe_status
from domain.models import OrderStatus


class TestStatusDisplay:
    def test_every_status_has_display(self):
        assert set(STATUS_DISPLAY) == set(OrderStatus)

    @pytest.mark.parametrize(
        "order_id, text, color, active",
        [
            ("ord-1001", "Delivered", "green", False),
            ("ord-1002", "Out for Delivery", "indigo", True),
            ("ord-1003", "Pending", "orange", True),
            ("ord-1004", "Cancelled", "red", False),
        ],
    )
    def test_describe(self, data_store, order_id, text, color, active):
        presentation = describe_status(data_store.get_order(order_id))
        assert presentation.display_text == text
        assert presentation.color == color
        assert presentation.is_active == active


class TestActions:
    """Which buttons the tracking screen offers."""

    def test_pending_can_cancel(self, data_store):
        assert allowed_actions(data_store.get_order("ord-1003")) == [OrderAction.CANCEL]

    def test_delivery_in_progress(self, data_store):
        actions = allowed_actions(data_store.get_order("ord-1002"))
        assert actions == [OrderAction.TRACK, OrderAction.CONTACT_DRIVER]

    def test_pickup_ready(self, data_store):
        actions = allowed_actions(data_store.get_order("ord-1005"))
        assert actions == [OrderAction.TRACK, OrderAction.CONFIRM_PICKUP]

    def test_delivered(self, data_store):
        actions = allowed_actions(data_store.get_order("ord-1001"))
        assert actions == [OrderAction.REORDER, OrderAction.RATE]

    def test_cancelled(self, data_store):
        presentation = describe_status(data_store.get_order("ord-1004"))
        assert presentation.actions == [OrderAction.REORDER, OrderAction.CONTACT_SUPPORT]
        assert presentation.cancellation_reason is not None
