"""
Demonstration scripts for the checkout flow.

Run them to watch a cart being built, checked out and carried through its
delivery lifecycle, with notification and loyalty subscribers reacting to
the published events.
"""

import logging
from datetime import datetime, timedelta

from checkout.cart import CartService
from checkout.errors import VendorConflictError
from checkout.loyalty import LoyaltyService
from checkout.order_status import describe_status
from checkout.orders import OrderService
from domain.channels import NotificationChannels
from domain.data_store import DataStore
from domain.models import DeliveryMethod, OrderStatus, PaymentMethod
from domain.templates import format_money
from events.event_bus import reset_event_bus
from events.notification_service import NotificationService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)-24s | %(levelname)-5s | %(message)s",
    datefmt="%H:%M:%S",
)


def _setup():
    event_bus = reset_event_bus()
    data_store = DataStore()
    channels = NotificationChannels()
    carts = CartService(data_store=data_store, event_bus=event_bus)
    orders = OrderService(data_store=data_store, event_bus=event_bus, cart_service=carts)
    loyalty = LoyaltyService(data_store=data_store, event_bus=event_bus)
    notifications = NotificationService(event_bus=event_bus, data_store=data_store, channels=channels)
    loyalty.subscribe()
    notifications.start()
    return data_store, channels, carts, orders, notifications


def _print_header(title: str):
    print("\n" + "=" * 70)
    print(title)
    print("=" * 70 + "\n")


def run_cart_demo():
    """Build a cart, hit the single-vendor rule and price the result."""
    _print_header("CHECKOUT DEMO: Cart pricing and the single-vendor rule")
    data_store, channels, carts, orders, notifications = _setup()
    customer_id = "cust-001"

    carts.add_item(customer_id, "item-nasi-lemak", quantity=2, customizations={"size": "large"})
    carts.add_item(
        customer_id,
        "item-nasi-lemak",
        quantity=4,
        customizations={"size": "regular", "addons": ["egg"]},
    )
    print("Added two Nasi Lemak lines from Dapur Makcik Catering.\n")

    try:
        carts.add_item(customer_id, "item-teh-tarik", customizations={"sugar": "less"})
    except VendorConflictError as e:
        print(f"Adding Kopi Corner's Teh Tarik was refused: {e.message}\n")

    carts.set_delivery_method(customer_id, DeliveryMethod.OWN_FLEET)
    carts.apply_promo_code(customer_id, "SAVE10")

    summary = carts.summarize(customer_id)
    print("-" * 70)
    print(f"Subtotal:     {format_money(summary.subtotal)}")
    print(f"SST (6%):     {format_money(summary.tax_amount)}")
    print(f"Delivery:     {format_money(summary.delivery_fee)} ({summary.delivery_fee_source})")
    print(f"Discount:     -{format_money(summary.discount_amount)}")
    print(f"Total:        {format_money(summary.total_amount)}")
    print("-" * 70)

    evaluation = orders.validator.evaluate_checkout(carts.get_cart(customer_id))
    print(f"\nCan checkout: {evaluation.can_checkout}")
    for error in evaluation.errors:
        print(f"  error:   {error}")
    for warning in evaluation.warnings:
        print(f"  warning: {warning}")
    notifications.stop()


def run_order_lifecycle_demo():
    """Place an order and move it through to delivery."""
    _print_header("CHECKOUT DEMO: Order lifecycle, notifications and loyalty")
    data_store, channels, carts, orders, notifications = _setup()
    customer_id = "cust-001"
    points_before = data_store.get_customer(customer_id).loyalty_points

    carts.add_item(customer_id, "item-rendang-tray", quantity=1)
    carts.set_delivery_method(customer_id, DeliveryMethod.SCHEDULED)
    slot = (datetime.now() + timedelta(days=1)).replace(hour=12, minute=0, second=0, microsecond=0)
    carts.set_scheduled_time(customer_id, slot)

    order = orders.place_order(customer_id, payment_method=PaymentMethod.FPX)
    orders.record_payment(order.id, succeeded=True, reference="FPX-DEMO-1")
    print(f"\nPlaced {order.order_number} for {format_money(order.total_amount)}\n")

    for status in (
        OrderStatus.CONFIRMED,
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.OUT_FOR_DELIVERY,
        OrderStatus.DELIVERED,
    ):
        order = orders.update_status(order.id, status)
        presentation = describe_status(order)
        actions = ", ".join(a.value for a in presentation.actions) or "none"
        print(f"  {presentation.display_text:<18} ({presentation.color:<6}) actions: {actions}")

    points_after = data_store.get_customer(customer_id).loyalty_points
    print("\n" + "-" * 70)
    print(f"Notifications sent: {channels.get_total_sent_count()}")
    for message in channels.get_all_sent_messages():
        print(f"  {message}")
    print(f"Loyalty points: {points_before} -> {points_after}")
    notifications.stop()


if __name__ == "__main__":
    run_cart_demo()
    run_order_lifecycle_demo()
