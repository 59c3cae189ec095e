"""
Cart and order events.

- Services publish events when carts and orders change
- Subscribers (notifications, loyalty) react without the publishers knowing
"""

from events.event_bus import Event, EventBus, get_event_bus, reset_event_bus
from events.events import EventTypes

__all__ = [
    "Event",
    "EventBus",
    "EventTypes",
    "get_event_bus",
    "reset_event_bus",
]
