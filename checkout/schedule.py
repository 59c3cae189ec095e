"""
Scheduled delivery validation and time slots.

A scheduled time must be in the future, far enough ahead for the kitchen,
inside business hours, within the booking window and in a slot that still
has capacity for the vendor.
"""

import logging
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from domain.data_store import DataStore, get_data_store
from domain.models import to_local_time
from domain.settings import CheckoutSettings, get_settings

logger = logging.getLogger("schedule_validation")


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ScheduleCheck(BaseModel):
    name: str
    severity: Severity
    message: str


class ScheduleValidationResult(BaseModel):
    scheduled_time: datetime
    checks: list[ScheduleCheck] = Field(default_factory=list)

    @property
    def errors(self) -> list[str]:
        return [c.message for c in self.checks if c.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[str]:
        return [c.message for c in self.checks if c.severity == Severity.WARNING]

    @property
    def is_valid(self) -> bool:
        return not self.errors


class ScheduleValidator:
    """Validates requested delivery times against timing, hours and capacity rules."""

    def __init__(
        self,
        data_store: Optional[DataStore] = None,
        settings: Optional[CheckoutSettings] = None,
    ):
        self.data_store = data_store or get_data_store()
        self.settings = settings or get_settings()

    def validate(
        self,
        scheduled_time: datetime,
        vendor_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ScheduleValidationResult:
        scheduled_time = to_local_time(scheduled_time)
        now = to_local_time(now or datetime.now())
        result = ScheduleValidationResult(scheduled_time=scheduled_time)
        result.checks.append(self._check_timing(scheduled_time, now))
        result.checks.append(self._check_business_hours(scheduled_time))
        result.checks.append(self._check_capacity(scheduled_time, vendor_id))

        if not result.is_valid:
            logger.info(f"Schedule {scheduled_time.isoformat()} rejected: {result.errors}")
        return result

    def available_slots(
        self,
        day: date,
        vendor_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> list[datetime]:
        """Slot start times on a day that would pass validation."""
        now = now or datetime.now()
        slots = []
        step = timedelta(minutes=self.settings.slot_minutes)
        current = datetime.combine(day, time(hour=self.settings.business_open_hour))
        closing = datetime.combine(day, time.min) + timedelta(hours=self.settings.business_close_hour)
        while current < closing:
            if self.validate(current, vendor_id, now=now).is_valid:
                slots.append(current)
            current += step
        return slots

    # =========================================================================
    # Individual checks
    # =========================================================================

    def _check_timing(self, scheduled_time: datetime, now: datetime) -> ScheduleCheck:
        if scheduled_time < now:
            return ScheduleCheck(
                name="timing",
                severity=Severity.ERROR,
                message="Scheduled time cannot be in the past",
            )

        hours = self.settings.minimum_advance_hours
        if scheduled_time < now + timedelta(hours=hours):
            return ScheduleCheck(
                name="timing",
                severity=Severity.ERROR,
                message=f"Please schedule at least {hours} hours in advance",
            )

        days = self.settings.max_schedule_days
        if scheduled_time > now + timedelta(days=days):
            return ScheduleCheck(
                name="timing",
                severity=Severity.ERROR,
                message=f"Deliveries can only be scheduled up to {days} days ahead",
            )

        return ScheduleCheck(name="timing", severity=Severity.INFO, message="Timing is valid")

    def _check_business_hours(self, scheduled_time: datetime) -> ScheduleCheck:
        opening = self.settings.business_open_hour
        closing = self.settings.business_close_hour
        hour = scheduled_time.hour

        if hour < opening or hour >= closing:
            return ScheduleCheck(
                name="business_hours",
                severity=Severity.ERROR,
                message=f"Delivery time must be between {opening:02d}:00 and {closing:02d}:00",
            )

        if hour == opening or hour == closing - 1:
            return ScheduleCheck(
                name="business_hours",
                severity=Severity.WARNING,
                message="Delivery scheduled during extended hours",
            )

        return ScheduleCheck(
            name="business_hours", severity=Severity.INFO, message="Within business hours"
        )

    def _check_capacity(self, scheduled_time: datetime, vendor_id: Optional[str]) -> ScheduleCheck:
        booked = self.data_store.count_scheduled_orders(vendor_id, scheduled_time)
        limit = self.settings.max_orders_per_slot_hour

        if booked >= limit:
            return ScheduleCheck(
                name="capacity", severity=Severity.ERROR, message="Time slot is fully booked"
            )
        if booked >= limit * 0.8:
            return ScheduleCheck(
                name="capacity", severity=Severity.WARNING, message="Time slot is almost full"
            )
        return ScheduleCheck(name="capacity", severity=Severity.INFO, message="Slot available")
