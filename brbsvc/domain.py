"""Domain records: bookings, services, users, vendors and their summaries."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


@dataclass
class Booking:
    """A customer's booking of a vendor's service for a time slot."""

    id: int = 0
    user_id: str = ""
    vendor_id: int = 0
    service_id: str = ""
    start_time: str = ""
    end_time: str = ""
    status: str = ""  # pending, confirmed, completed

    # JSON key -> (attribute, expected type)
    _JSON_FIELDS = {
        "ID": ("id", int),
        "user_id": ("user_id", str),
        "vendor_id": ("vendor_id", int),
        "service_id": ("service_id", str),
        "start_time": ("start_time", str),
        "end_time": ("end_time", str),
        "status": ("status", str),
    }

    @classmethod
    def from_json(cls, data: str | bytes | dict[str, Any]) -> Booking:
        """Build a booking from a JSON document or an already decoded object.

        Keys match case-insensitively; unknown keys are ignored and null
        values leave the field at its default.
        """
        if isinstance(data, (str, bytes, bytearray)):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as exc:
                raise ValueError(f"invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError("booking payload must be a JSON object")

        by_folded_key = {key.lower(): spec for key, spec in cls._JSON_FIELDS.items()}
        values: dict[str, Any] = {}
        for key, value in data.items():
            spec = by_folded_key.get(str(key).lower())
            if spec is None or value is None:
                continue
            attribute, expected = spec
            values[attribute] = _check_type(key, value, expected)
        return cls(**values)

    def to_json(self) -> dict[str, Any]:
        """Return the booking as a JSON-ready dictionary."""
        return {key: getattr(self, attribute) for key, (attribute, _) in self._JSON_FIELDS.items()}


def _check_type(key: str, value: Any, expected: type) -> Any:
    if expected is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"field {key!r} must be an integer")
        if not _INT64_MIN <= value <= _INT64_MAX:
            raise ValueError(f"field {key!r} is out of range")
        return value
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string")
    return value


@dataclass
class Service:
    """A service that vendors can offer."""

    id: int = 0
    name: str = ""
    description: str = ""
    active: bool = False


@dataclass
class User:
    """A platform user."""

    id: str = ""
    name: str = ""
    email: str = ""
    role: str = ""  # "admin" or "customer"
    password: str = ""


@dataclass
class Vendor:
    """A vendor offering services."""

    id: str = ""
    name: str = ""
    email: str = ""
    phone: str = ""


@dataclass
class VendorSummary:
    """Booking totals for one vendor."""

    vendor_id: int = 0
    total_bookings: int = 0
    status_counts: dict[str, int] = field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        """Return the summary as a JSON-ready dictionary."""
        return {
            "VendorID": self.vendor_id,
            "TotalBookings": self.total_bookings,
            "StatusCounts": dict(self.status_counts),
        }


@dataclass
class VendorService:
    """Link between a vendor and a service it offers."""

    id: str = ""
    vendor_id: str = ""
    service_id: str = ""
    active: bool = False