"""
Loyalty points.

Customers earn points on delivered orders: one point per whole ringgit
spent, scaled by their tier multiplier and rounded down. Points are
credited by an event subscriber so the order service stays unaware of
loyalty entirely.
"""

import logging
import math
from typing import Optional

from pydantic import BaseModel

from checkout.errors import CustomerNotFoundError, InsufficientPointsError, OrderNotFoundError
from domain.data_store import DataStore, get_data_store
from domain.models import CustomerProfile, LoyaltyTier, OrderStatus
from events.event_bus import Event, EventBus, get_event_bus
from events.events import EventTypes

logger = logging.getLogger("loyalty_service")


def points_for_amount(amount: float, tier: LoyaltyTier) -> int:
    return int(math.floor(math.floor(amount) * tier.multiplier))


class LoyaltySummary(BaseModel):
    customer_id: str
    tier: LoyaltyTier
    multiplier: float
    loyalty_points: int
    total_orders: int
    total_spent: float


class LoyaltyService:
    """
    Credits points for delivered orders and handles redemptions.

    Example:
        loyalty = LoyaltyService()
        loyalty.subscribe()
        # ... an order is delivered ...
        loyalty.get_summary("cust-001").loyalty_points
    """

    def __init__(
        self,
        data_store: Optional[DataStore] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self.data_store = data_store or get_data_store()
        self.event_bus = event_bus or get_event_bus()
        self._subscribed = False

    def subscribe(self):
        if self._subscribed:
            return
        self.event_bus.subscribe(EventTypes.ORDER_STATUS_CHANGED, self.handle_order_status_changed)
        self._subscribed = True
        logger.info("Loyalty service subscribed to order status events")

    def unsubscribe(self):
        if not self._subscribed:
            return
        self.event_bus.unsubscribe(EventTypes.ORDER_STATUS_CHANGED, self.handle_order_status_changed)
        self._subscribed = False

    def handle_order_status_changed(self, event: Event):
        if event.payload.get("new_status") != OrderStatus.DELIVERED.value:
            return
        self.credit_order(event.payload["order_id"])

    def credit_order(self, order_id: str) -> int:
        """
        Credit points for a delivered order. Returns the points credited,
        which is zero when the order was already credited.
        """
        order = self.data_store.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(f"Order {order_id} not found")
        if order.points_credited:
            logger.debug(f"Order {order_id} already credited")
            return 0
        customer = self._get_customer(order.customer_id)

        points = points_for_amount(order.total_amount, customer.tier)
        customer.loyalty_points += points
        customer.total_orders += 1
        customer.total_spent = round(customer.total_spent + order.total_amount, 2)
        self.data_store.save_customer(customer)
        order.points_credited = True
        self.data_store.save_order(order)

        logger.info(
            f"Credited {points} points to {customer.id} for {order.order_number} "
            f"({customer.tier.value})"
        )
        return points

    def redeem_points(self, customer_id: str, points: int) -> CustomerProfile:
        """
        Spend points from a customer's balance.

        Raises:
            ValueError: points is not positive
            InsufficientPointsError: The balance is too low
        """
        if points <= 0:
            raise ValueError("Points to redeem must be positive")

        customer = self._get_customer(customer_id)
        if customer.loyalty_points < points:
            raise InsufficientPointsError(customer.loyalty_points, points)

        customer.loyalty_points -= points
        self.data_store.save_customer(customer)
        logger.info(f"{customer_id} redeemed {points} points, {customer.loyalty_points} left")
        return customer

    def get_summary(self, customer_id: str) -> LoyaltySummary:
        customer = self._get_customer(customer_id)
        return LoyaltySummary(
            customer_id=customer.id,
            tier=customer.tier,
            multiplier=customer.tier.multiplier,
            loyalty_points=customer.loyalty_points,
            total_orders=customer.total_orders,
            total_spent=customer.total_spent,
        )

    def _get_customer(self, customer_id: str) -> CustomerProfile:
        customer = self.data_store.get_customer(customer_id)
        if customer is None:
            raise CustomerNotFoundError(f"Customer {customer_id} not found")
        return customer
