"""
In-memory event bus for cart and order updates.

The customer app listens for realtime changes to its cart and orders; here
the services publish those changes on a synchronous pub/sub bus and
subscribers (notifications, loyalty) react to them.

Design decisions:
- Synchronous delivery in subscription order
- Subscriptions by event type, plus "*" for every event
- Every published event is appended to an in-memory log for inspection
- A failing handler is logged and skipped; the remaining handlers still run
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional
from uuid import uuid4

logger = logging.getLogger("event_bus")

WILDCARD = "*"


@dataclass
class Event:
    """
    A record of something that happened to a cart or an order.

    Attributes:
        event_type: Routing name, e.g. "OrderStatusChanged"
        payload: Event-specific data, enough that subscribers never query back
        source: The publishing service
        event_id: Unique id of this event instance
        timestamp: When the event was created
    """
    event_type: str
    payload: dict[str, Any]
    source: str
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"Event({self.event_type}, id={self.event_id[:8]}, source={self.source})"


EventHandler = Callable[[Event], None]


class EventBus:
    """
    Pub/sub hub shared by the checkout services.

    Example:
        bus = EventBus()
        bus.subscribe("OrderPlaced", lambda event: print(event.payload["order_id"]))
        bus.publish(order_placed(order))
    """

    def __init__(self):
        self._subscribers: dict[str, list[EventHandler]] = defaultdict(list)
        self._event_log: list[Event] = []

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        self._subscribers[event_type].append(handler)
        logger.debug(f"Subscribed handler to '{event_type}' events")

    def subscribe_all(self, handler: EventHandler) -> None:
        self.subscribe(WILDCARD, handler)

    def unsubscribe(self, event_type: str, handler: EventHandler) -> bool:
        """Remove a handler. Returns False when it was not subscribed."""
        handlers = self._subscribers.get(event_type, [])
        if handler not in handlers:
            return False
        handlers.remove(handler)
        logger.debug(f"Unsubscribed handler from '{event_type}' events")
        return True

    def publish(self, event: Event) -> int:
        """
        Deliver an event to its subscribers.

        Returns:
            Number of handlers the event was delivered to
        """
        self._event_log.append(event)
        logger.info(f"Publishing: {event}")

        handlers = self._subscribers.get(event.event_type, []) + self._subscribers.get(WILDCARD, [])
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Handler raised exception for {event}: {e}")

        if not handlers:
            logger.debug(f"No handlers for event type '{event.event_type}'")
        return len(handlers)

    def get_subscriber_count(self, event_type: str) -> int:
        return len(self._subscribers.get(event_type, []))

    def get_event_log(self, event_type: Optional[str] = None) -> list[Event]:
        """Published events, optionally only those of one type."""
        if event_type is None:
            return list(self._event_log)
        return [e for e in self._event_log if e.event_type == event_type]

    def clear_event_log(self) -> None:
        self._event_log.clear()

    def clear_subscribers(self) -> None:
        self._subscribers.clear()


_default_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    """Get the default event bus singleton."""
    global _default_bus
    if _default_bus is None:
        _default_bus = EventBus()
    return _default_bus


def reset_event_bus() -> EventBus:
    """Replace the default event bus with an empty one (useful for testing)."""
    global _default_bus
    _default_bus = EventBus()
    return _default_bus
