"""
Cart, checkout and order services.

- Cart operations with the single-vendor rule
- Pricing, fallback delivery fees and schedule validation
- The checkout gate that lists errors and warnings before an order is placed
- Order lifecycle, status presentation and loyalty points
"""

from checkout.cart import CartService
from checkout.loyalty import LoyaltyService, points_for_amount
from checkout.order_status import describe_status
from checkout.orders import OrderService
from checkout.pricing import CartSummary, PricingService
from checkout.validation import CheckoutEvaluation, CheckoutValidator, evaluate_checkout

__all__ = [
    "CartService",
    "CartSummary",
    "CheckoutEvaluation",
    "CheckoutValidator",
    "LoyaltyService",
    "OrderService",
    "PricingService",
    "describe_status",
    "evaluate_checkout",
    "points_for_amount",
]
