"""
Tunable business constants for the checkout service.

Everything that a deployment might want to change (tax rate, fee tables,
business hours, scheduling limits) lives on one pydantic model so services
can take an explicit instance in tests and fall back to the shared default
otherwise.
"""

from typing import Optional
from pydantic import BaseModel, Field


class CheckoutSettings(BaseModel):
    """Pricing, delivery and scheduling parameters."""

    currency: str = Field(default="RM", description="Currency prefix used in messages")
    tax_rate: float = Field(default=0.06, ge=0, description="Fixed-rate sales tax (SST)")

    # Delivery fee fallback table
    base_delivery_fee: float = Field(default=5.0, ge=0)
    minimum_delivery_fee: float = Field(default=5.0, ge=0)
    maximum_delivery_fee: float = Field(default=50.0, ge=0)
    free_delivery_threshold: float = Field(default=200.0, ge=0)
    reduced_fee_threshold: float = Field(default=100.0, ge=0)
    default_distance_km: float = Field(default=5.0, ge=0)
    max_delivery_radius_km: float = Field(default=15.0, ge=0)

    # Scheduling
    business_open_hour: int = Field(default=8, ge=0, le=23)
    business_close_hour: int = Field(default=22, ge=1, le=24)
    minimum_advance_hours: int = Field(default=2, ge=0)
    max_schedule_days: int = Field(default=7, ge=1)
    slot_minutes: int = Field(default=30, ge=5)
    max_orders_per_slot_hour: int = Field(default=10, ge=1)

    # Checkout warnings and limits
    large_order_line_count: int = Field(default=10, ge=1)
    high_value_order_total: float = Field(default=500.0, ge=0)
    max_instructions_length: int = Field(default=500, ge=1)


_default_settings: Optional[CheckoutSettings] = None


def get_settings() -> CheckoutSettings:
    """Get the default settings singleton."""
    global _default_settings
    if _default_settings is None:
        _default_settings = CheckoutSettings()
    return _default_settings
