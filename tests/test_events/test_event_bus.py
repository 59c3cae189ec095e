"""
Tests for the event bus.

These tests verify the pub/sub mechanism the cart and order services use
to announce changes.
"""

import pytest
from events.event_bus import Event, EventBus, get_event_bus, reset_event_bus
from events.events import EventTypes, cart_cleared, order_status_changed


class TestEvent:
    """Tests for Event class."""

    def test_create_event(self):
        """Test basic event creation."""
        event = Event(
            event_type="CartUpdated",
            source="cart-service",
            payload={"customer_id": "cust-001"},
        )

        assert event.event_type == "CartUpdated"
        assert event.source == "cart-service"
        assert event.payload == {"customer_id": "cust-001"}
        assert event.event_id is not None
        assert event.timestamp is not None

    def test_event_ids_are_unique(self):
        """Test that each event gets a unique ID."""
        event1 = Event(event_type="Test", source="test", payload={})
        event2 = Event(event_type="Test", source="test", payload={})

        assert event1.event_id != event2.event_id

    def test_event_str(self):
        """Test event string representation."""
        event = Event(event_type="OrderPlaced", source="order-service", payload={})

        str_repr = str(event)
        assert "OrderPlaced" in str_repr
        assert "order-service" in str_repr


class TestEventFactories:
    """Tests for the event constructors."""

    def test_cart_cleared(self):
        event = cart_cleared("cust-001", reason="replaced")
        assert event.event_type == EventTypes.CART_CLEARED
        assert event.payload == {"customer_id": "cust-001", "reason": "replaced"}

    def test_status_changed_carries_delivery_details(self, data_store):
        """Subscribers get the address without looking the order up."""
        order = data_store.get_order("ord-1002")
        event = order_status_changed(order, "ready")

        assert event.payload["previous_status"] == "ready"
        assert event.payload["new_status"] == "out_for_delivery"
        assert event.payload["delivery_address"] == order.delivery_address.full_address
        assert event.payload["vendor_id"] == "vendor-002"


class TestEventBus:
    """Tests for EventBus pub/sub functionality."""

    @pytest.fixture
    def bus(self):
        """Create a fresh event bus for each test."""
        return EventBus()

    def test_subscribe_and_publish(self, bus: EventBus):
        """Test basic subscribe and publish flow."""
        received_events = []

        bus.subscribe("CartUpdated", received_events.append)
        bus.publish(Event(event_type="CartUpdated", source="test", payload={"quantity": 3}))

        assert len(received_events) == 1
        assert received_events[0].payload["quantity"] == 3

    def test_subscribe_to_specific_type(self, bus: EventBus):
        """Test that handlers only receive events of their subscribed type."""
        received = []

        bus.subscribe("OrderPlaced", lambda e: received.append(e.event_type))

        bus.publish(Event(event_type="OrderPlaced", source="test", payload={}))
        bus.publish(Event(event_type="CartCleared", source="test", payload={}))
        bus.publish(Event(event_type="OrderPlaced", source="test", payload={}))

        assert received == ["OrderPlaced", "OrderPlaced"]

    def test_subscribe_all(self, bus: EventBus):
        """Wildcard handlers run after the type-specific ones."""
        received = []

        bus.subscribe_all(lambda e: received.append(("all", e.event_type)))
        bus.subscribe("TypeA", lambda e: received.append(("a", e.event_type)))

        bus.publish(Event(event_type="TypeA", source="test", payload={}))
        bus.publish(Event(event_type="TypeB", source="test", payload={}))

        assert received == [("a", "TypeA"), ("all", "TypeA"), ("all", "TypeB")]

    def test_unsubscribe(self, bus: EventBus):
        """Test unsubscribing a handler."""
        received = []

        def handler(event):
            received.append(event)

        bus.subscribe("Test", handler)
        bus.publish(Event(event_type="Test", source="test", payload={}))
        assert bus.unsubscribe("Test", handler) is True

        bus.publish(Event(event_type="Test", source="test", payload={}))
        assert len(received) == 1

    def test_unsubscribe_nonexistent_handler(self, bus: EventBus):
        assert bus.unsubscribe("Test", lambda e: None) is False

    def test_publish_returns_handler_count(self, bus: EventBus):
        """Test that publish returns the number of handlers called."""
        bus.subscribe("Test", lambda e: None)
        bus.subscribe("Test", lambda e: None)
        bus.subscribe("Other", lambda e: None)
        bus.subscribe_all(lambda e: None)

        count = bus.publish(Event(event_type="Test", source="test", payload={}))

        assert count == 3

    def test_event_log_filter(self, bus: EventBus):
        """The log keeps every event and can be filtered by type."""
        bus.publish(Event(event_type="Event1", source="test", payload={}))
        bus.publish(Event(event_type="Event2", source="test", payload={}))
        bus.publish(Event(event_type="Event1", source="test", payload={}))

        assert len(bus.get_event_log()) == 3
        assert len(bus.get_event_log("Event1")) == 2

        bus.clear_event_log()
        assert bus.get_event_log() == []

    def test_handler_exception_doesnt_stop_others(self, bus: EventBus):
        """Test that one handler's exception doesn't prevent others from running."""
        results = []

        def bad_handler(event):
            raise ValueError("I'm broken!")

        bus.subscribe("Test", bad_handler)
        bus.subscribe("Test", lambda e: results.append("success"))

        count = bus.publish(Event(event_type="Test", source="test", payload={}))

        assert results == ["success"]
        assert count == 2

    def test_clear_subscribers(self, bus: EventBus):
        bus.subscribe("Test", lambda e: None)
        bus.clear_subscribers()
        assert bus.get_subscriber_count("Test") == 0


class TestEventBusSingleton:
    """Tests for the module-level singleton functions."""

    def test_reset_event_bus(self):
        """Test that reset_event_bus creates a new instance."""
        bus1 = get_event_bus()
        bus1.subscribe("Test", lambda e: None)

        bus2 = reset_event_bus()

        assert bus2 is not bus1
        assert get_event_bus() is bus2
        assert bus2.get_subscriber_count("Test") == 0
