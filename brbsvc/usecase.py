"""Business rules for bookings, services and vendors."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any

from .domain import Booking, Service, Vendor, VendorSummary

log = logging.getLogger(__name__)

OPENING_HOUR = 9
CLOSING_HOUR = 17
SUMMARY_STATUSES = ("pending", "confirmed", "completed")

_RFC3339 = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:[.,](\d+))?(Z|[+-]\d{2}:\d{2})",
    re.ASCII,
)


class BookingError(Exception):
    """Base class for errors raised by the use cases."""


class ValidationError(BookingError, ValueError):
    """Raised when input breaks a business rule."""


class OverlapError(BookingError):
    """Raised when a booking collides with an existing one."""


def _parse_rfc3339(value: str, label: str) -> datetime:
    match = _RFC3339.fullmatch(value)
    if match is None:
        raise ValidationError(f"error parsing {label} time: {value!r}")
    year, month, day, hour, minute, second, fraction, zone = match.groups()
    if zone == "Z":
        tz = timezone.utc
    else:
        sign = -1 if zone[0] == "-" else 1
        offset_hours, offset_minutes = int(zone[1:3]), int(zone[4:6])
        if offset_hours > 23 or offset_minutes > 59:
            raise ValidationError(f"error parsing {label} time: {value!r}")
        tz = timezone(sign * timedelta(hours=offset_hours, minutes=offset_minutes))
    microsecond = int((fraction or "0")[:6].ljust(6, "0"))
    try:
        return datetime(
            int(year), int(month), int(day), int(hour), int(minute), int(second), microsecond, tzinfo=tz
        )
    except ValueError as exc:
        raise ValidationError(f"error parsing {label} time: {value!r}") from exc


class BookingUsecase:
    """Creates bookings and reports on them."""

    def __init__(self, repo: Any) -> None:
        self._repo = repo

    def create_booking(self, booking: Booking) -> int:
        """Validate the booking, mark it pending, store it and return its id.

        Raises ValidationError for unparsable times or times outside
        opening hours, and OverlapError if the vendor is already booked.
        """
        start = _parse_rfc3339(booking.start_time, "start")
        end = _parse_rfc3339(booking.end_time, "end")
        log.debug("Start time %s (hour %d), end time %s (hour %d)", start, start.hour, end, end.hour)

        if start.hour < OPENING_HOUR or end.hour > CLOSING_HOUR:
            raise ValidationError("bookings must be between 9 AM and 5 PM and last 1 hour")

        if self._repo.find_overlapping_booking(booking.vendor_id, start, end):
            log.debug("Booking overlaps with an existing booking")
            raise OverlapError("booking time overlaps with an existing booking")

        booking.status = "pending"
        return self._repo.create(booking)

    def get_booking_by_id(self, booking_id: int) -> Booking | None:
        """Return the booking with this id, or None if there is none."""
        return self._repo.get_by_id(booking_id)

    def get_vendor_summary(self, vendor_id: int) -> VendorSummary:
        """Return the vendor's total bookings and counts per status."""
        total = self._repo.count_total_by_vendor(vendor_id)
        counts = {status: self._repo.count_by_status(vendor_id, status) for status in SUMMARY_STATUSES}
        return VendorSummary(vendor_id=vendor_id, total_bookings=total, status_counts=counts)


class ServiceUsecase:
    """Manages the catalogue of services."""

    def __init__(self, repo: Any) -> None:
        self._repo = repo

    def create_service(self, service: Service) -> int:
        """Store a new service; its name must not be empty."""
        if not service.name:
            raise ValidationError("service name is required")
        return self._repo.create(service)

    def update_service(self, service: Service) -> None:
        """Copy name, description and availability onto the stored service."""
        existing = self._repo.get_by_id(service.id)
        existing.name = service.name
        existing.description = service.description
        existing.active = service.active
        self._repo.update(existing)

    def get_service_by_id(self, service_id: int) -> Service:
        """Return the service with this id."""
        return self._repo.get_by_id(service_id)

    def list_services(self) -> list[Service]:
        """Return every service."""
        return self._repo.list_all()

    def toggle_service_availability(self, service_id: int, active: bool) -> None:
        """Mark the service as available or unavailable."""
        service = self._repo.get_by_id(service_id)
        service.active = active
        self._repo.update(service)


class VendorUsecase:
    """Manages vendors."""

    def __init__(self, repo: Any) -> None:
        self._repo = repo

    def create_vendor(self, vendor: Vendor) -> None:
        """Store a new vendor; its name must not be empty."""
        if not vendor.name:
            raise ValidationError("vendor name is required")
        self._repo.create(vendor)

    def update_vendor(self, vendor: Vendor) -> None:
        """Rename the stored vendor that has the same id."""
        existing = self._repo.get_by_id(vendor.id)
        existing.name = vendor.name
        self._repo.update(existing)

    def get_vendor_by_id(self, vendor_id: int) -> Vendor:
        """Return the vendor with this numeric id."""
        return self._repo.get_by_id(str(int(vendor_id)))

    def list_vendors(self) -> list[Vendor]:
        """Return every vendor."""
        return self._repo.list_all()