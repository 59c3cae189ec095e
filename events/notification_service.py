"""
Order update notifications.

Subscribes to order events and tells the customer about them on every
channel they opted into for order updates. All "when and what to send"
logic lives here; the order service only publishes events.
"""

import logging
from typing import Optional

from checkout.loyalty import points_for_amount
from domain.channels import NotificationChannels, NotificationResult
from domain.data_store import DataStore, get_data_store
from domain.models import CustomerProfile, DeliveryMethod, OrderStatus
from domain.settings import CheckoutSettings, get_settings
from domain.templates import (
    NotificationType,
    format_item_list,
    format_money,
    render_notification,
)
from events.event_bus import Event, EventBus, get_event_bus
from events.events import EventTypes

logger = logging.getLogger("notification_service")


STATUS_NOTIFICATIONS: dict[str, NotificationType] = {
    OrderStatus.CONFIRMED.value: NotificationType.ORDER_CONFIRMED,
    OrderStatus.PREPARING.value: NotificationType.ORDER_PREPARING,
    OrderStatus.READY.value: NotificationType.ORDER_READY,
    OrderStatus.OUT_FOR_DELIVERY.value: NotificationType.ORDER_OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED.value: NotificationType.ORDER_DELIVERED,
    OrderStatus.CANCELLED.value: NotificationType.ORDER_CANCELLED,
}


class NotificationService:
    """
    Event-driven notification sender.

    Example:
        service = NotificationService()
        service.start()
        # orders placed or updated from now on notify their customers
    """

    def __init__(
        self,
        event_bus: Optional[EventBus] = None,
        data_store: Optional[DataStore] = None,
        channels: Optional[NotificationChannels] = None,
        settings: Optional[CheckoutSettings] = None,
    ):
        self.event_bus = event_bus or get_event_bus()
        self.data_store = data_store or get_data_store()
        self.channels = channels or NotificationChannels()
        self.settings = settings or get_settings()
        self._started = False

    def start(self) -> None:
        if self._started:
            logger.warning("NotificationService already started")
            return
        self.event_bus.subscribe(EventTypes.ORDER_PLACED, self._handle_order_placed)
        self.event_bus.subscribe(EventTypes.ORDER_STATUS_CHANGED, self._handle_order_status_changed)
        self._started = True
        logger.info("NotificationService started - subscribed to order events")

    def stop(self) -> None:
        if not self._started:
            return
        self.event_bus.unsubscribe(EventTypes.ORDER_PLACED, self._handle_order_placed)
        self.event_bus.unsubscribe(EventTypes.ORDER_STATUS_CHANGED, self._handle_order_status_changed)
        self._started = False
        logger.info("NotificationService stopped")

    # =========================================================================
    # Event Handlers
    # =========================================================================

    def _handle_order_placed(self, event: Event) -> None:
        payload = event.payload
        currency = self.settings.currency
        self._notify(
            NotificationType.ORDER_PLACED,
            payload,
            item_list=format_item_list(payload.get("items", []), currency),
            total=format_money(payload["total_amount"], currency),
        )

    def _handle_order_status_changed(self, event: Event) -> None:
        payload = event.payload
        new_status = payload["new_status"]
        notification_type = STATUS_NOTIFICATIONS.get(new_status)
        if notification_type is None:
            return

        logger.info(f"Handling OrderStatusChanged: order={payload['order_id']}, status={new_status}")

        extra = {}
        if notification_type == NotificationType.ORDER_READY:
            pickup = DeliveryMethod(payload["delivery_method"]).is_pickup
            extra["ready_note"] = "for pickup" if pickup else "and waiting for the driver"
        elif notification_type == NotificationType.ORDER_OUT_FOR_DELIVERY:
            extra["delivery_address"] = payload.get("delivery_address") or "your address"
        elif notification_type == NotificationType.ORDER_CANCELLED:
            extra["reason"] = payload.get("reason") or "No reason given"
        self._notify(notification_type, payload, **extra)

    # =========================================================================
    # Sending
    # =========================================================================

    def _notify(
        self,
        notification_type: NotificationType,
        payload: dict,
        **context,
    ) -> list[NotificationResult]:
        """Render and send one notification on each opted-in channel."""
        customer_id = payload["customer_id"]
        customer = self.data_store.get_customer(customer_id)
        if customer is None:
            logger.error(f"Customer not found: {customer_id}")
            return []

        channels_to_use = customer.notification_preferences.get_channels_for_type("order_updates")
        if not channels_to_use:
            logger.info(f"Customer {customer_id} has disabled order_updates notifications")
            return []

        vendor = self.data_store.get_vendor(payload["vendor_id"])
        context.update(
            customer_name=customer.name,
            order_number=payload["order_number"],
            vendor_name=vendor.business_name if vendor else "the restaurant",
        )
        if notification_type == NotificationType.ORDER_DELIVERED:
            context["points_earned"] = points_for_amount(payload["total_amount"], customer.tier)

        results = []
        for channel in channels_to_use:
            subject, body = render_notification(notification_type, channel=channel, **context)
            results.append(
                self.channels.send(channel, self._recipient(customer, channel), subject, body)
            )
            logger.info(f"Sent {notification_type.value} via {channel} to {customer_id}")
        return results

    @staticmethod
    def _recipient(customer: CustomerProfile, channel: str) -> str:
        if channel == "email":
            return customer.email
        if channel == "sms":
            return customer.phone
        return customer.id
