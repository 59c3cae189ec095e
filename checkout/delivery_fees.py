"""
Fallback delivery fee calculation.

The hosted backend normally quotes delivery fees. When it cannot (or when
no quote was passed in) the checkout falls back to this local table:

- Pickup methods are free
- Courier (third party): RM20 / RM15 / free base by subtotal tier, RM3 per km
- Own fleet and scheduled: RM10 / RM5 / free base by subtotal tier, RM2 per km
- A positive fee is raised to the minimum and capped at the maximum
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

from domain.models import Address, DeliveryMethod, Vendor
from domain.settings import CheckoutSettings, get_settings

logger = logging.getLogger("delivery_fees")

EARTH_RADIUS_KM = 6371.0

# (base fee below reduced threshold, base fee below free threshold, per-km rate)
FEE_TABLE: dict[DeliveryMethod, tuple[float, float, float]] = {
    DeliveryMethod.THIRD_PARTY: (20.0, 15.0, 3.0),
    DeliveryMethod.OWN_FLEET: (10.0, 5.0, 2.0),
    DeliveryMethod.SCHEDULED: (10.0, 5.0, 2.0),
}


@dataclass
class DeliveryFeeQuote:
    method: DeliveryMethod
    final_fee: float
    base_fee: float = 0.0
    distance_fee: float = 0.0
    distance_km: float = 0.0
    source: str = "fallback"


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


class DeliveryFeeCalculator:
    """Computes fallback fees and delivery distances."""

    def __init__(self, settings: Optional[CheckoutSettings] = None):
        self.settings = settings or get_settings()

    def distance_km(self, vendor: Optional[Vendor], address: Optional[Address]) -> float:
        """Vendor-to-address distance, or the default distance when coordinates are missing."""
        if (
            vendor is None
            or address is None
            or vendor.latitude is None
            or vendor.longitude is None
            or address.latitude is None
            or address.longitude is None
        ):
            return self.settings.default_distance_km
        return round(
            haversine_km(vendor.latitude, vendor.longitude, address.latitude, address.longitude),
            2,
        )

    def is_within_radius(self, vendor: Optional[Vendor], address: Optional[Address]) -> bool:
        return self.distance_km(vendor, address) <= self.settings.max_delivery_radius_km

    def quote(
        self,
        method: DeliveryMethod,
        subtotal: float,
        vendor: Optional[Vendor] = None,
        address: Optional[Address] = None,
    ) -> DeliveryFeeQuote:
        if method.is_pickup:
            return DeliveryFeeQuote(method=method, final_fee=0.0)

        low_tier_fee, mid_tier_fee, per_km = FEE_TABLE[method]
        if subtotal >= self.settings.free_delivery_threshold:
            base_fee = 0.0
        elif subtotal >= self.settings.reduced_fee_threshold:
            base_fee = mid_tier_fee
        else:
            base_fee = low_tier_fee

        distance = self.distance_km(vendor, address)
        distance_fee = round(distance * per_km, 2)
        fee = base_fee + distance_fee

        if 0 < fee < self.settings.minimum_delivery_fee:
            fee = self.settings.minimum_delivery_fee
        if fee > self.settings.maximum_delivery_fee:
            fee = self.settings.maximum_delivery_fee

        quote = DeliveryFeeQuote(
            method=method,
            final_fee=round(fee, 2),
            base_fee=base_fee,
            distance_fee=distance_fee,
            distance_km=distance,
        )
        logger.debug(
            f"Fallback fee for {method.value}: base {base_fee:.2f} + "
            f"{distance:.2f}km -> {quote.final_fee:.2f}"
        )
        return quote
