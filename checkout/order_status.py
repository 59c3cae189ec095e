"""
Order status presentation.

A plain lookup table from status (plus delivery method) to what the order
tracking screen shows: label, colour, whether the order is still live and
which actions the customer may take.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from domain.models import Order, OrderStatus


class OrderAction(str, Enum):
    CANCEL = "cancel"
    TRACK = "track"
    CONFIRM_PICKUP = "confirm_pickup"
    CONTACT_DRIVER = "contact_driver"
    REORDER = "reorder"
    RATE = "rate"
    CONTACT_SUPPORT = "contact_support"


# status -> (display text, colour)
STATUS_DISPLAY: dict[OrderStatus, tuple[str, str]] = {
    OrderStatus.PENDING: ("Pending", "orange"),
    OrderStatus.CONFIRMED: ("Confirmed", "blue"),
    OrderStatus.PREPARING: ("Preparing", "purple"),
    OrderStatus.READY: ("Ready", "green"),
    OrderStatus.OUT_FOR_DELIVERY: ("Out for Delivery", "indigo"),
    OrderStatus.DELIVERED: ("Delivered", "green"),
    OrderStatus.CANCELLED: ("Cancelled", "red"),
}


class StatusPresentation(BaseModel):
    order_id: str
    status: OrderStatus
    display_text: str
    color: str
    is_active: bool
    actions: list[OrderAction] = Field(default_factory=list)
    status_history: dict[str, datetime] = Field(default_factory=dict)
    cancellation_reason: Optional[str] = None


def allowed_actions(order: Order) -> list[OrderAction]:
    status = order.status
    pickup = order.delivery_method.is_pickup
    actions = []

    if status == OrderStatus.PENDING:
        actions.append(OrderAction.CANCEL)
    if status.is_active and status != OrderStatus.PENDING:
        actions.append(OrderAction.TRACK)
    if status == OrderStatus.READY and pickup:
        actions.append(OrderAction.CONFIRM_PICKUP)
    if status == OrderStatus.OUT_FOR_DELIVERY and not pickup:
        actions.append(OrderAction.CONTACT_DRIVER)
    # any finished order can be reordered
    if not status.is_active:
        actions.append(OrderAction.REORDER)
    if status == OrderStatus.DELIVERED:
        actions.append(OrderAction.RATE)
    if status == OrderStatus.CANCELLED:
        actions.append(OrderAction.CONTACT_SUPPORT)

    return actions


def describe_status(order: Order) -> StatusPresentation:
    text, color = STATUS_DISPLAY[order.status]
    return StatusPresentation(
        order_id=order.id,
        status=order.status,
        display_text=text,
        color=color,
        is_active=order.status.is_active,
        actions=allowed_actions(order),
        status_history=dict(order.status_history),
        cancellation_reason=order.cancellation_reason,
    )
