"""
Order service.

Turns a checked-out cart into an order and moves orders through their
lifecycle. Every change is published on the event bus; this service does
not know who listens (notifications, loyalty).

Status rules:
- Orders advance one step at a time:
  pending -> confirmed -> preparing -> ready -> out_for_delivery -> delivered
- Pickup orders skip out_for_delivery (ready -> delivered)
- Any non-terminal order may be cancelled
- Delivered and cancelled orders never change again
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from checkout.cart import CartService
from checkout.errors import (
    CartValidationError,
    CheckoutNotAllowedError,
    CustomerNotFoundError,
    InvalidStatusTransitionError,
    MenuItemNotFoundError,
    OrderNotFoundError,
    VendorConflictError,
)
from checkout.validation import CheckoutValidator
from domain.data_store import DataStore, get_data_store
from domain.models import (
    ORDER_STATUS_SEQUENCE,
    Cart,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from domain.settings import CheckoutSettings, get_settings
from events.event_bus import EventBus, get_event_bus
from events.events import order_placed, order_status_changed, payment_recorded

logger = logging.getLogger("order_service")


class ReorderResult(BaseModel):
    cart: Cart
    added: list[str] = Field(default_factory=list, description="Names of re-added items")
    skipped: list[str] = Field(default_factory=list, description="Items that could not be re-added")


def status_path(order: Order) -> list[OrderStatus]:
    """The forward status sequence that applies to an order's delivery method."""
    if order.delivery_method.is_pickup:
        return [s for s in ORDER_STATUS_SEQUENCE if s != OrderStatus.OUT_FOR_DELIVERY]
    return list(ORDER_STATUS_SEQUENCE)


def next_status(order: Order) -> Optional[OrderStatus]:
    path = status_path(order)
    if order.status not in path:
        return None
    index = path.index(order.status)
    return path[index + 1] if index + 1 < len(path) else None


def can_transition(order: Order, new_status: OrderStatus) -> bool:
    if order.status.is_terminal:
        return False
    if new_status == OrderStatus.CANCELLED:
        return True
    return new_status == next_status(order)


class OrderService:
    """
    Places orders and applies status and payment updates.

    Example:
        orders = OrderService()
        order = orders.place_order("cust-001", payment_method=PaymentMethod.FPX)
        orders.update_status(order.id, OrderStatus.CONFIRMED)
    """

    def __init__(
        self,
        data_store: Optional[DataStore] = None,
        event_bus: Optional[EventBus] = None,
        settings: Optional[CheckoutSettings] = None,
        cart_service: Optional[CartService] = None,
        validator: Optional[CheckoutValidator] = None,
    ):
        self.data_store = data_store or get_data_store()
        self.event_bus = event_bus or get_event_bus()
        self.settings = settings or get_settings()
        self.cart_service = cart_service or CartService(
            self.data_store, self.event_bus, self.settings
        )
        self.validator = validator or CheckoutValidator(self.data_store, self.settings)

    # =========================================================================
    # Placing orders
    # =========================================================================

    def place_order(
        self,
        customer_id: str,
        payment_method: Optional[PaymentMethod] = None,
        delivery_fee: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> Order:
        """
        Check out the customer's cart.

        Raises:
            CustomerNotFoundError: Unknown customer
            CheckoutNotAllowedError: The checkout gate reported errors
        """
        if self.data_store.get_customer(customer_id) is None:
            raise CustomerNotFoundError(f"Customer {customer_id} not found")

        now = now or datetime.now()
        cart = self.cart_service.get_cart(customer_id)
        evaluation = self.validator.evaluate_checkout(cart, now=now, delivery_fee=delivery_fee)
        if not evaluation.can_checkout:
            logger.warning(f"Checkout refused for {customer_id}: {evaluation.errors}")
            raise CheckoutNotAllowedError(evaluation.errors)

        summary = evaluation.summary
        order = Order(
            id=f"ord-{uuid4().hex[:8]}",
            order_number=self._next_order_number(now),
            customer_id=customer_id,
            vendor_id=cart.vendor_id,
            items=[
                OrderItem(
                    product_id=line.product_id,
                    name=line.name,
                    unit_price=line.unit_price,
                    customization_cost=line.customization_cost,
                    quantity=line.quantity,
                    line_total=line.line_total,
                    customizations=dict(line.customizations),
                    notes=line.notes,
                )
                for line in cart.items
            ],
            delivery_method=cart.delivery_method,
            delivery_address=cart.delivery_address,
            scheduled_time=cart.scheduled_time,
            subtotal=summary.subtotal,
            tax_amount=summary.tax_amount,
            delivery_fee=summary.delivery_fee,
            discount_amount=summary.discount_amount,
            total_amount=summary.total_amount,
            promo_code=cart.promo_code,
            payment_method=payment_method or cart.payment_method,
            special_instructions=cart.special_instructions,
            status_history={OrderStatus.PENDING.value: now},
            created_at=now,
        )
        self.data_store.save_order(order)
        logger.info(
            f"Order {order.order_number} placed by {customer_id}: "
            f"{len(order.items)} lines, total {order.total_amount:.2f}"
        )

        self.cart_service.clear_cart(customer_id, reason="checked_out")
        self.event_bus.publish(order_placed(order))
        return order

    def _next_order_number(self, now: datetime) -> str:
        prefix = f"ORD-{now:%Y%m%d}"
        taken = sum(1 for o in self.data_store.get_orders() if o.order_number.startswith(prefix))
        return f"{prefix}-{taken + 1:04d}"

    # =========================================================================
    # Queries
    # =========================================================================

    def get_order(self, order_id: str) -> Order:
        order = self.data_store.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(f"Order {order_id} not found")
        return order

    def list_orders(self, customer_id: str, active_only: bool = False) -> list[Order]:
        """A customer's orders, newest first."""
        orders = self.data_store.get_orders_by_customer(customer_id)
        if active_only:
            orders = [o for o in orders if o.status.is_active]
        return orders

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def update_status(
        self,
        order_id: str,
        new_status: OrderStatus,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Order:
        """
        Move an order to a new status.

        Raises:
            OrderNotFoundError: Unknown order
            InvalidStatusTransitionError: The move is not allowed
        """
        order = self.get_order(order_id)
        if not can_transition(order, new_status):
            logger.warning(
                f"Rejected transition for {order_id}: {order.status.value} -> {new_status.value}"
            )
            raise InvalidStatusTransitionError(order_id, order.status.value, new_status.value)

        now = now or datetime.now()
        previous = order.status
        order.status = new_status
        order.status_history[new_status.value] = now
        order.updated_at = now

        if new_status == OrderStatus.CANCELLED:
            order.cancellation_reason = reason
            if order.payment_status == PaymentStatus.PAID:
                order.payment_status = PaymentStatus.REFUNDED

        self.data_store.save_order(order)
        logger.info(f"Order {order_id}: {previous.value} -> {new_status.value}")
        self.event_bus.publish(order_status_changed(order, previous.value, reason=reason))
        return order

    def cancel_order(self, order_id: str, reason: str = "Cancelled by customer") -> Order:
        return self.update_status(order_id, OrderStatus.CANCELLED, reason=reason)

    def record_payment(
        self,
        order_id: str,
        succeeded: bool,
        reference: Optional[str] = None,
    ) -> Order:
        """Record the outcome of a payment attempt."""
        order = self.get_order(order_id)
        order.payment_status = PaymentStatus.PAID if succeeded else PaymentStatus.FAILED
        order.payment_reference = reference
        order.updated_at = datetime.now()
        self.data_store.save_order(order)

        if succeeded:
            logger.info(f"Payment recorded for {order_id}: {reference}")
        else:
            logger.warning(f"Payment failed for {order_id}")
        self.event_bus.publish(payment_recorded(order, succeeded, reference))
        return order

    def reorder(self, order_id: str) -> ReorderResult:
        """
        Refill the customer's cart from a finished order.

        The current cart is replaced. Lines whose product is gone, unavailable
        or whose customizations no longer validate are reported as skipped.
        """
        order = self.get_order(order_id)
        if order.status.is_active:
            raise CartValidationError(["Only delivered or cancelled orders can be reordered"])

        customer_id = order.customer_id
        self.cart_service.clear_cart(customer_id, reason="reorder")
        result = ReorderResult(cart=self.cart_service.get_cart(customer_id))

        for line in order.items:
            try:
                self.cart_service.add_item(
                    customer_id,
                    line.product_id,
                    quantity=line.quantity,
                    customizations=line.customizations,
                    notes=line.notes,
                )
            except (MenuItemNotFoundError, CartValidationError, VendorConflictError) as e:
                logger.info(f"Reorder of {order_id} skipped {line.name}: {e.message}")
                result.skipped.append(line.name)
            else:
                result.added.append(line.name)

        result.cart = self.cart_service.get_cart(customer_id)
        return result
