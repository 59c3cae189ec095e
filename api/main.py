"""
FastAPI application for the checkout service.

Exposes the cart, checkout, order tracking, loyalty, delivery slot and
menu import operations over HTTP. Each route is a thin wrapper over a
service; business rule violations raise CheckoutError subclasses which a
single exception handler turns into JSON error responses.

Run with:
    uv run uvicorn api.main:app --reload

Then visit http://localhost:8000/docs for interactive API documentation.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from fastapi import Depends, FastAPI, File, Query, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)-24s | %(levelname)-5s | %(message)s",
    datefmt="%H:%M:%S",
)

from checkout.cart import CartService
from checkout.errors import (
    CheckoutError,
    CustomerNotFoundError,
    InvalidStatusTransitionError,
    NotFoundError,
    VendorConflictError,
    VendorNotFoundError,
)
from checkout.loyalty import LoyaltyService, LoyaltySummary
from checkout.order_status import StatusPresentation, describe_status
from checkout.orders import OrderService, ReorderResult
from checkout.pricing import CartSummary
from checkout.schedule import ScheduleValidator
from checkout.validation import CheckoutEvaluation
from domain.channels import NotificationChannels
from domain.data_store import DataStore, get_data_store
from domain.models import (
    Address,
    Cart,
    DeliveryMethod,
    Order,
    OrderStatus,
    PaymentMethod,
    Selection,
)
from events.event_bus import EventBus, get_event_bus
from events.notification_service import NotificationService
from menu_import.models import ImportCommitResult, MenuImportResult, MenuImportRow, RowFilter
from menu_import.parser import UnsupportedFormatError
from menu_import.service import MenuImportService

logger = logging.getLogger("checkout_api")


# =============================================================================
# Service wiring
# =============================================================================

@dataclass
class Services:
    """Every service the routes use, sharing one data store and event bus."""
    data_store: DataStore
    event_bus: EventBus
    channels: NotificationChannels
    carts: CartService
    orders: OrderService
    loyalty: LoyaltyService
    notifications: NotificationService
    schedule: ScheduleValidator
    menu_import: MenuImportService


def build_services(
    data_store: Optional[DataStore] = None,
    event_bus: Optional[EventBus] = None,
    channels: Optional[NotificationChannels] = None,
) -> Services:
    data_store = data_store or get_data_store()
    event_bus = event_bus or get_event_bus()
    channels = channels or NotificationChannels()

    carts = CartService(data_store=data_store, event_bus=event_bus)
    orders = OrderService(data_store=data_store, event_bus=event_bus, cart_service=carts)
    loyalty = LoyaltyService(data_store=data_store, event_bus=event_bus)
    notifications = NotificationService(
        event_bus=event_bus, data_store=data_store, channels=channels
    )
    loyalty.subscribe()
    notifications.start()

    return Services(
        data_store=data_store,
        event_bus=event_bus,
        channels=channels,
        carts=carts,
        orders=orders,
        loyalty=loyalty,
        notifications=notifications,
        schedule=ScheduleValidator(data_store=data_store),
        menu_import=MenuImportService(data_store=data_store),
    )


_services: Optional[Services] = None


def get_services() -> Services:
    global _services
    if _services is None:
        _services = build_services()
    return _services


def reset_api_state(
    data_store: Optional[DataStore] = None,
    event_bus: Optional[EventBus] = None,
    channels: Optional[NotificationChannels] = None,
) -> Services:
    """Rebuild the services around fresh (or given) dependencies (for testing)."""
    global _services
    if _services is not None:
        _services.notifications.stop()
        _services.loyalty.unsubscribe()
    _services = build_services(data_store, event_bus or EventBus(), channels)
    return _services


def require_customer(services: Services, customer_id: str):
    if services.data_store.get_customer(customer_id) is None:
        raise CustomerNotFoundError(f"Customer {customer_id} not found")


# =============================================================================
# Request / response models
# =============================================================================

class AddItemRequest(BaseModel):
    product_id: str
    quantity: int = Field(default=1, ge=1)
    customizations: dict[str, Selection] = Field(default_factory=dict)
    notes: Optional[str] = None
    replace_cart: bool = Field(
        default=False,
        description="Clear a cart holding another vendor's items instead of failing",
    )


class UpdateQuantityRequest(BaseModel):
    quantity: int = Field(..., ge=0, description="0 removes the line")


class DeliveryRequest(BaseModel):
    delivery_method: DeliveryMethod
    address_id: Optional[str] = Field(default=None, description="A saved address id")
    address: Optional[Address] = Field(default=None, description="An ad hoc address")
    scheduled_time: Optional[datetime] = None


class CheckoutDetailsRequest(BaseModel):
    special_instructions: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None


class PromoRequest(BaseModel):
    code: str


class PlaceOrderRequest(BaseModel):
    payment_method: Optional[PaymentMethod] = None
    delivery_fee: Optional[float] = Field(default=None, ge=0, description="Externally quoted fee")


class StatusUpdateRequest(BaseModel):
    status: OrderStatus
    reason: Optional[str] = None


class CancelRequest(BaseModel):
    reason: str = "Cancelled by customer"


class PaymentRequest(BaseModel):
    succeeded: bool
    reference: Optional[str] = None


class RedeemRequest(BaseModel):
    points: int = Field(..., gt=0)


class MenuImportRequest(BaseModel):
    filename: str = Field(..., description="Original file name; the extension selects the parser")
    content: str = Field(..., description="CSV or JSON file contents; send .xlsx files to the upload routes")


class CartResponse(BaseModel):
    cart: Cart
    summary: CartSummary


class SlotsResponse(BaseModel):
    vendor_id: str
    day: date
    slots: list[datetime]


class ImportPreviewResponse(BaseModel):
    vendor_id: str
    filename: str
    file_format: str
    total_rows: int
    valid_rows: int
    error_rows: int
    warning_rows: int
    rows: list[MenuImportRow]


def preview_response(result: MenuImportResult, row_filter: RowFilter) -> ImportPreviewResponse:
    return ImportPreviewResponse(
        vendor_id=result.vendor_id,
        filename=result.filename,
        file_format=result.file_format,
        rows=result.filter(row_filter),
        **result.counts(),
    )


# =============================================================================
# Application
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.info("Starting checkout API")
    get_services()
    yield
    logging.info("Shutting down")


app = FastAPI(
    title="Food Delivery Checkout API",
    description="""
    Cart, checkout and order tracking for the customer app, plus bulk menu import for vendors.

    ## Endpoints

    - `/customers/{id}/cart/*` - Cart contents, delivery choices and promo codes
    - `/customers/{id}/checkout` - Checkout evaluation and order placement
    - `/orders/{id}/*` - Order tracking and status updates
    - `/customers/{id}/loyalty` - Loyalty balance and redemptions
    - `/vendors/{id}/*` - Delivery slots and menu import (JSON body or multipart upload)
    """,
    version="1.0.0",
    lifespan=lifespan,
)


def status_code_for(error: CheckoutError) -> int:
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, (VendorConflictError, InvalidStatusTransitionError)):
        return 409
    if isinstance(error, UnsupportedFormatError):
        return 415
    return 422


@app.exception_handler(CheckoutError)
async def checkout_error_handler(request: Request, error: CheckoutError):
    status_code = status_code_for(error)
    logger.info(f"{request.method} {request.url.path} -> {status_code}: {error.message}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": error.message, "error": type(error).__name__, **error.details},
    )


@app.get("/health", tags=["Health"])
def health_check():
    return {"status": "healthy", "service": "food-delivery-checkout"}


# =============================================================================
# Cart
# =============================================================================

def cart_response(services: Services, customer_id: str) -> CartResponse:
    return CartResponse(
        cart=services.carts.get_cart(customer_id),
        summary=services.carts.summarize(customer_id),
    )


@app.get("/customers/{customer_id}/cart", response_model=CartResponse, tags=["Cart"])
def get_cart(customer_id: str, services: Services = Depends(get_services)):
    require_customer(services, customer_id)
    return cart_response(services, customer_id)


@app.post("/customers/{customer_id}/cart/items", response_model=CartResponse, tags=["Cart"])
def add_cart_item(
    customer_id: str,
    request: AddItemRequest,
    services: Services = Depends(get_services),
):
    """
    Add a product. Returns 409 when the cart holds another vendor's items;
    retry with replace_cart=true to start a new cart.
    """
    require_customer(services, customer_id)
    services.carts.add_item(
        customer_id,
        request.product_id,
        quantity=request.quantity,
        customizations=request.customizations,
        notes=request.notes,
        replace_cart=request.replace_cart,
    )
    return cart_response(services, customer_id)


@app.patch(
    "/customers/{customer_id}/cart/items/{item_id}", response_model=CartResponse, tags=["Cart"]
)
def update_cart_item(
    customer_id: str,
    item_id: str,
    request: UpdateQuantityRequest,
    services: Services = Depends(get_services),
):
    require_customer(services, customer_id)
    services.carts.update_quantity(customer_id, item_id, request.quantity)
    return cart_response(services, customer_id)


@app.delete(
    "/customers/{customer_id}/cart/items/{item_id}", response_model=CartResponse, tags=["Cart"]
)
def remove_cart_item(customer_id: str, item_id: str, services: Services = Depends(get_services)):
    require_customer(services, customer_id)
    services.carts.remove_item(customer_id, item_id)
    return cart_response(services, customer_id)


@app.delete("/customers/{customer_id}/cart", response_model=CartResponse, tags=["Cart"])
def clear_cart(customer_id: str, services: Services = Depends(get_services)):
    require_customer(services, customer_id)
    services.carts.clear_cart(customer_id)
    return cart_response(services, customer_id)


@app.put("/customers/{customer_id}/cart/delivery", response_model=CartResponse, tags=["Cart"])
def set_delivery(
    customer_id: str,
    request: DeliveryRequest,
    services: Services = Depends(get_services),
):
    require_customer(services, customer_id)
    services.carts.set_delivery_method(customer_id, request.delivery_method)
    if request.address_id is not None:
        services.carts.set_delivery_address(customer_id, request.address_id)
    elif request.address is not None:
        services.carts.set_delivery_address(customer_id, request.address)
    if request.scheduled_time is not None:
        services.carts.set_scheduled_time(customer_id, request.scheduled_time)
    return cart_response(services, customer_id)


@app.put("/customers/{customer_id}/cart/details", response_model=CartResponse, tags=["Cart"])
def set_checkout_details(
    customer_id: str,
    request: CheckoutDetailsRequest,
    services: Services = Depends(get_services),
):
    require_customer(services, customer_id)
    services.carts.set_special_instructions(customer_id, request.special_instructions)
    services.carts.set_payment_method(customer_id, request.payment_method)
    return cart_response(services, customer_id)


@app.put("/customers/{customer_id}/cart/promo", response_model=CartResponse, tags=["Cart"])
def apply_promo(
    customer_id: str,
    request: PromoRequest,
    services: Services = Depends(get_services),
):
    require_customer(services, customer_id)
    services.carts.apply_promo_code(customer_id, request.code)
    return cart_response(services, customer_id)


@app.delete("/customers/{customer_id}/cart/promo", response_model=CartResponse, tags=["Cart"])
def remove_promo(customer_id: str, services: Services = Depends(get_services)):
    require_customer(services, customer_id)
    services.carts.remove_promo_code(customer_id)
    return cart_response(services, customer_id)


@app.get("/customers/{customer_id}/cart/summary", response_model=CartSummary, tags=["Cart"])
def get_cart_summary(
    customer_id: str,
    delivery_fee: Optional[float] = Query(default=None, ge=0),
    services: Services = Depends(get_services),
):
    require_customer(services, customer_id)
    return services.carts.summarize(customer_id, delivery_fee=delivery_fee)


# =============================================================================
# Checkout
# =============================================================================

@app.get("/customers/{customer_id}/checkout", response_model=CheckoutEvaluation, tags=["Checkout"])
def evaluate_checkout(
    customer_id: str,
    delivery_fee: Optional[float] = Query(default=None, ge=0),
    services: Services = Depends(get_services),
):
    """Errors and warnings for the current cart; any error blocks checkout."""
    require_customer(services, customer_id)
    cart = services.carts.get_cart(customer_id)
    return services.orders.validator.evaluate_checkout(cart, delivery_fee=delivery_fee)


@app.post(
    "/customers/{customer_id}/checkout",
    response_model=Order,
    status_code=201,
    tags=["Checkout"],
)
def place_order(
    customer_id: str,
    request: PlaceOrderRequest,
    services: Services = Depends(get_services),
):
    return services.orders.place_order(
        customer_id,
        payment_method=request.payment_method,
        delivery_fee=request.delivery_fee,
    )


# =============================================================================
# Orders
# =============================================================================

@app.get("/customers/{customer_id}/orders", response_model=list[Order], tags=["Orders"])
def list_orders(
    customer_id: str,
    active_only: bool = False,
    services: Services = Depends(get_services),
):
    require_customer(services, customer_id)
    return services.orders.list_orders(customer_id, active_only=active_only)


@app.get("/orders/{order_id}", response_model=Order, tags=["Orders"])
def get_order(order_id: str, services: Services = Depends(get_services)):
    return services.orders.get_order(order_id)


@app.get("/orders/{order_id}/track", response_model=StatusPresentation, tags=["Orders"])
def track_order(order_id: str, services: Services = Depends(get_services)):
    return describe_status(services.orders.get_order(order_id))


@app.post("/orders/{order_id}/status", response_model=Order, tags=["Orders"])
def update_order_status(
    order_id: str,
    request: StatusUpdateRequest,
    services: Services = Depends(get_services),
):
    return services.orders.update_status(order_id, request.status, reason=request.reason)


@app.post("/orders/{order_id}/cancel", response_model=Order, tags=["Orders"])
def cancel_order(
    order_id: str,
    request: CancelRequest,
    services: Services = Depends(get_services),
):
    return services.orders.cancel_order(order_id, reason=request.reason)


@app.post("/orders/{order_id}/payment", response_model=Order, tags=["Orders"])
def record_payment(
    order_id: str,
    request: PaymentRequest,
    services: Services = Depends(get_services),
):
    return services.orders.record_payment(order_id, request.succeeded, request.reference)


@app.post("/orders/{order_id}/reorder", response_model=ReorderResult, tags=["Orders"])
def reorder(order_id: str, services: Services = Depends(get_services)):
    return services.orders.reorder(order_id)


# =============================================================================
# Loyalty
# =============================================================================

@app.get("/customers/{customer_id}/loyalty", response_model=LoyaltySummary, tags=["Loyalty"])
def get_loyalty(customer_id: str, services: Services = Depends(get_services)):
    return services.loyalty.get_summary(customer_id)


@app.post(
    "/customers/{customer_id}/loyalty/redeem", response_model=LoyaltySummary, tags=["Loyalty"]
)
def redeem_points(
    customer_id: str,
    request: RedeemRequest,
    services: Services = Depends(get_services),
):
    services.loyalty.redeem_points(customer_id, request.points)
    return services.loyalty.get_summary(customer_id)


# =============================================================================
# Vendors
# =============================================================================

@app.get("/vendors/{vendor_id}/schedule/slots", response_model=SlotsResponse, tags=["Vendors"])
def get_schedule_slots(
    vendor_id: str,
    day: date,
    services: Services = Depends(get_services),
):
    if services.data_store.get_vendor(vendor_id) is None:
        raise VendorNotFoundError(f"Vendor {vendor_id} not found")
    return SlotsResponse(
        vendor_id=vendor_id,
        day=day,
        slots=services.schedule.available_slots(day, vendor_id),
    )


@app.post(
    "/vendors/{vendor_id}/menu-import/preview",
    response_model=ImportPreviewResponse,
    tags=["Vendors"],
)
def preview_menu_import(
    vendor_id: str,
    request: MenuImportRequest,
    row_filter: RowFilter = Query(default=RowFilter.ALL, alias="filter"),
    services: Services = Depends(get_services),
):
    result = services.menu_import.preview(vendor_id, request.filename, request.content)
    return preview_response(result, row_filter)


@app.post(
    "/vendors/{vendor_id}/menu-import/commit",
    response_model=ImportCommitResult,
    status_code=201,
    tags=["Vendors"],
)
def commit_menu_import(
    vendor_id: str,
    request: MenuImportRequest,
    services: Services = Depends(get_services),
):
    """Re-validate the file and create menu items for its valid rows."""
    result = services.menu_import.preview(vendor_id, request.filename, request.content)
    return services.menu_import.commit(vendor_id, result)


@app.post(
    "/vendors/{vendor_id}/menu-import/upload/preview",
    response_model=ImportPreviewResponse,
    tags=["Vendors"],
)
def preview_menu_upload(
    vendor_id: str,
    file: UploadFile = File(..., description="CSV, JSON or .xlsx menu file"),
    row_filter: RowFilter = Query(default=RowFilter.ALL, alias="filter"),
    services: Services = Depends(get_services),
):
    """Same as the JSON preview, for a multipart file upload (required for .xlsx)."""
    result = services.menu_import.preview(vendor_id, file.filename or "", file.file.read())
    return preview_response(result, row_filter)


@app.post(
    "/vendors/{vendor_id}/menu-import/upload/commit",
    response_model=ImportCommitResult,
    status_code=201,
    tags=["Vendors"],
)
def commit_menu_upload(
    vendor_id: str,
    file: UploadFile = File(...),
    services: Services = Depends(get_services),
):
    result = services.menu_import.preview(vendor_id, file.filename or "", file.file.read())
    return services.menu_import.commit(vendor_id, result)
