"""
Event definitions for cart and order changes.

Events are named in past tense and carry everything a subscriber needs,
so the notification and loyalty services never have to query back.
"""

from typing import Any, Optional

from domain.models import CartItem, Order
from events.event_bus import Event


class EventTypes:
    """Event type names."""
    # Cart events
    CART_ITEM_ADDED = "CartItemAdded"
    CART_ITEM_REMOVED = "CartItemRemoved"
    CART_CLEARED = "CartCleared"
    CART_UPDATED = "CartUpdated"

    # Order events
    ORDER_PLACED = "OrderPlaced"
    ORDER_STATUS_CHANGED = "OrderStatusChanged"
    PAYMENT_RECORDED = "PaymentRecorded"


# =============================================================================
# Cart Events
# =============================================================================

def cart_item_added(customer_id: str, item: CartItem, source: str = "cart-service") -> Event:
    return Event(
        event_type=EventTypes.CART_ITEM_ADDED,
        source=source,
        payload={
            "customer_id": customer_id,
            "item_id": item.id,
            "product_id": item.product_id,
            "vendor_id": item.vendor_id,
            "quantity": item.quantity,
        },
    )


def cart_item_removed(
    customer_id: str,
    item_id: str,
    product_id: str,
    source: str = "cart-service",
) -> Event:
    return Event(
        event_type=EventTypes.CART_ITEM_REMOVED,
        source=source,
        payload={
            "customer_id": customer_id,
            "item_id": item_id,
            "product_id": product_id,
        },
    )


def cart_cleared(customer_id: str, reason: str = "cleared", source: str = "cart-service") -> Event:
    """
    Published when every line is dropped from a cart.

    The reason is "cleared" for an explicit clear, "replaced" when a new
    vendor's item displaced the cart and "checked_out" after an order.
    """
    return Event(
        event_type=EventTypes.CART_CLEARED,
        source=source,
        payload={"customer_id": customer_id, "reason": reason},
    )


def cart_updated(
    customer_id: str,
    changes: dict[str, Any],
    source: str = "cart-service",
) -> Event:
    """Published for quantity, delivery, promo, instruction and payment changes."""
    return Event(
        event_type=EventTypes.CART_UPDATED,
        source=source,
        payload={"customer_id": customer_id, "changes": changes},
    )


# =============================================================================
# Order Events
# =============================================================================

def order_placed(order: Order, source: str = "order-service") -> Event:
    """
    Create an OrderPlaced event.

    Carries the line summary and total so the confirmation message can be
    rendered straight from the payload.
    """
    return Event(
        event_type=EventTypes.ORDER_PLACED,
        source=source,
        payload={
            "order_id": order.id,
            "order_number": order.order_number,
            "customer_id": order.customer_id,
            "vendor_id": order.vendor_id,
            "delivery_method": order.delivery_method.value,
            "items": [
                {"name": item.name, "quantity": item.quantity, "price": item.line_total}
                for item in order.items
            ],
            "total_amount": order.total_amount,
        },
    )


def order_status_changed(
    order: Order,
    previous_status: str,
    reason: Optional[str] = None,
    source: str = "order-service",
) -> Event:
    """
    Create an OrderStatusChanged event.

    customer_id, vendor_id and delivery details are included so that
    subscribers can address the customer without looking the order up.
    """
    return Event(
        event_type=EventTypes.ORDER_STATUS_CHANGED,
        source=source,
        payload={
            "order_id": order.id,
            "order_number": order.order_number,
            "customer_id": order.customer_id,
            "vendor_id": order.vendor_id,
            "previous_status": previous_status,
            "new_status": order.status.value,
            "delivery_method": order.delivery_method.value,
            "delivery_address": (
                order.delivery_address.full_address if order.delivery_address else None
            ),
            "total_amount": order.total_amount,
            "reason": reason,
        },
    )


def payment_recorded(
    order: Order,
    succeeded: bool,
    reference: Optional[str] = None,
    source: str = "order-service",
) -> Event:
    return Event(
        event_type=EventTypes.PAYMENT_RECORDED,
        source=source,
        payload={
            "order_id": order.id,
            "customer_id": order.customer_id,
            "payment_status": order.payment_status.value,
            "succeeded": succeeded,
            "reference": reference,
            "amount": order.total_amount,
        },
    )
