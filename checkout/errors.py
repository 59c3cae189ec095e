"""
Checkout domain exceptions.

Raised by the services when a business rule is violated. The API layer
catches these and translates them into HTTP responses.
"""

from typing import Any, Optional


class CheckoutError(Exception):
    """Base class for every rule violation raised by the checkout services."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(CheckoutError):
    """A referenced record does not exist."""


class CustomerNotFoundError(NotFoundError):
    pass


class MenuItemNotFoundError(NotFoundError):
    pass


class CartItemNotFoundError(NotFoundError):
    pass


class OrderNotFoundError(NotFoundError):
    pass


class VendorNotFoundError(NotFoundError):
    pass


class AddressNotFoundError(NotFoundError):
    pass


class CartValidationError(CheckoutError):
    """The requested cart change breaks an item-level rule."""

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors), {"errors": errors})
        self.errors = errors


class VendorConflictError(CheckoutError):
    """
    The cart already holds another vendor's items.

    Callers must either drop the new item or retry with an explicit
    cart replacement.
    """

    def __init__(self, current_vendor_id: str, new_vendor_id: str):
        super().__init__(
            "Cannot add items from different vendors. "
            "Clear the cart or check out the current items first.",
            {"current_vendor_id": current_vendor_id, "new_vendor_id": new_vendor_id},
        )
        self.current_vendor_id = current_vendor_id
        self.new_vendor_id = new_vendor_id


class PromoCodeError(CheckoutError):
    pass


class CheckoutNotAllowedError(CheckoutError):
    """Checkout was attempted while the checkout gate reports errors."""

    def __init__(self, errors: list[str]):
        super().__init__("Checkout is not allowed: " + "; ".join(errors), {"errors": errors})
        self.errors = errors


class InvalidStatusTransitionError(CheckoutError):
    def __init__(self, order_id: str, current: str, requested: str):
        super().__init__(
            f"Order {order_id} cannot move from {current} to {requested}",
            {"order_id": order_id, "current_status": current, "requested_status": requested},
        )


class InsufficientPointsError(CheckoutError):
    def __init__(self, available: int, requested: int):
        super().__init__(
            f"Insufficient loyalty points. Requested: {requested}, available: {available}",
            {"available": available, "requested": requested},
        )
