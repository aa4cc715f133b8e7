"""SQL-backed repositories for bookings, services, users and vendors.

Each repository wraps a DB-API connection. Queries are written with ``?``
markers and rewritten for the driver's parameter style.
"""

from __future__ import annotations

import itertools
import re
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Callable, Iterator, Sequence

from .domain import Booking, Service, User, Vendor


class NotFoundError(LookupError):
    """Raised when a requested record does not exist."""


_MARKERS: dict[str, Callable[[int], str]] = {
    "qmark": lambda n: "?",
    "format": lambda n: "%s",
    "numeric": lambda n: f":{n}",
    "dollar": lambda n: f"${n}",
}


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


class _Repository:
    def __init__(self, conn: Any, paramstyle: str = "format") -> None:
        try:
            self._marker = _MARKERS[paramstyle]
        except KeyError:
            raise ValueError(f"unsupported paramstyle: {paramstyle!r}") from None
        self._conn = conn

    def _sql(self, query: str) -> str:
        numbers = itertools.count(1)
        return re.sub(r"\?", lambda _match: self._marker(next(numbers)), query)

    @contextmanager
    def _cursor(self, query: str, params: Sequence[Any]) -> Iterator[Any]:
        cursor = self._conn.cursor()
        try:
            cursor.execute(self._sql(query), tuple(params))
            yield cursor
        finally:
            cursor.close()

    def _one(self, query: str, params: Sequence[Any] = ()) -> Any:
        with self._cursor(query, params) as cursor:
            return cursor.fetchone()

    def _all(self, query: str, params: Sequence[Any] = ()) -> list[Any]:
        with self._cursor(query, params) as cursor:
            return list(cursor.fetchall())

    def _write(self, query: str, params: Sequence[Any], returning: bool = False) -> Any:
        try:
            with self._cursor(query, params) as cursor:
                row = cursor.fetchone() if returning else None
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise
        return row

    def _count(self, query: str, params: Sequence[Any]) -> int:
        row = self._one(query, params)
        return int(row[0])


_BOOKING_COLUMNS = "id, user_id, vendor_id, service_id, start_time, end_time, status, created_at"


def _booking_from_row(row: Sequence[Any]) -> Booking:
    # The creation timestamp is read into the start time.
    return Booking(
        id=row[0],
        user_id=_text(row[1]),
        vendor_id=row[2],
        service_id=_text(row[3]),
        start_time=_text(row[7]),
        end_time=_text(row[5]),
        status=_text(row[6]),
    )


class BookingRepository(_Repository):
    """Storage for bookings."""

    def create(self, booking: Booking) -> int:
        """Insert the booking, store its new id on it and return the id."""
        row = self._write(
            "INSERT INTO bookings (user_id, vendor_id, service_id, start_time, end_time, status) "
            "VALUES (?, ?, ?, ?, ?, ?) RETURNING id",
            (
                booking.user_id,
                booking.vendor_id,
                booking.service_id,
                booking.start_time,
                booking.end_time,
                booking.status,
            ),
            returning=True,
        )
        booking.id = row[0]
        return booking.id

    def get_by_id(self, booking_id: int) -> Booking | None:
        """Return the booking with this id, or None if there is none."""
        row = self._one(f"SELECT {_BOOKING_COLUMNS} FROM bookings WHERE id = ?", (booking_id,))
        return None if row is None else _booking_from_row(row)

    def get_vendor_bookings(self, vendor_id: int) -> list[Booking]:
        """Return every booking made with the vendor."""
        rows = self._all(f"SELECT {_BOOKING_COLUMNS} FROM bookings WHERE vendor_id = ?", (vendor_id,))
        return [_booking_from_row(row) for row in rows]

    def count_by_status(self, vendor_id: int, status: str) -> int:
        """Count the vendor's bookings that have the given status."""
        return self._count(
            "SELECT COUNT(*) FROM bookings WHERE vendor_id = ? AND status = ?",
            (vendor_id, status),
        )

    def count_total_by_vendor(self, vendor_id: int) -> int:
        """Count all of the vendor's bookings."""
        return self._count("SELECT COUNT(*) FROM bookings WHERE vendor_id = ?", (vendor_id,))

    def find_overlapping_booking(self, vendor_id: int, start: Any, end: Any) -> bool:
        """Tell whether any of the vendor's bookings overlaps [start, end)."""
        count = self._count(
            "SELECT COUNT(*) FROM bookings WHERE vendor_id = ? AND (start_time < ? AND end_time > ?)",
            (vendor_id, end, start),
        )
        return count > 0


def _service_from_row(row: Sequence[Any]) -> Service:
    return Service(id=row[0], name=_text(row[1]), description=_text(row[2]), active=bool(row[3]))


class ServiceRepository(_Repository):
    """Storage for services."""

    def create(self, service: Service) -> int:
        """Insert the service, store its new id on it and return the id."""
        row = self._write(
            "INSERT INTO services (name, description, active) VALUES (?, ?, ?) RETURNING id",
            (service.name, service.description, service.active),
            returning=True,
        )
        service.id = row[0]
        return service.id

    def update(self, service: Service) -> None:
        """Overwrite the stored service that has the same id."""
        self._write(
            "UPDATE services SET name = ?, description = ?, active = ? WHERE id = ?",
            (service.name, service.description, service.active, service.id),
        )

    def get_by_id(self, service_id: int) -> Service:
        """Return the service with this id; raise NotFoundError if missing."""
        row = self._one("SELECT id, name, description, active FROM services WHERE id = ?", (service_id,))
        if row is None:
            raise NotFoundError("service not found")
        return _service_from_row(row)

    def list_all(self) -> list[Service]:
        """Return every service."""
        return [_service_from_row(row) for row in self._all("SELECT id, name, description, active FROM services")]


def _user_from_row(row: Sequence[Any]) -> User:
    return User(
        id=_text(row[0]),
        name=_text(row[1]),
        email=_text(row[2]),
        role=_text(row[3]),
        password=_text(row[4]),
    )


class UserRepository(_Repository):
    """Storage for users."""

    def create(self, user: User) -> str:
        """Insert the user, store its new id on it and return the id."""
        row = self._write(
            "INSERT INTO users (name, email, role, password) VALUES (?, ?, ?, ?) RETURNING id",
            (user.name, user.email, user.role, user.password),
            returning=True,
        )
        user.id = _text(row[0])
        return user.id

    def get_by_id(self, user_id: int) -> User:
        """Return the user with this id; raise NotFoundError if missing."""
        row = self._one("SELECT id, name, email, role, password FROM users WHERE id = ?", (user_id,))
        if row is None:
            raise NotFoundError("user not found")
        return _user_from_row(row)

    def get_by_email(self, email: str) -> User:
        """Return the user with this e-mail address; raise NotFoundError if missing."""
        row = self._one("SELECT id, name, email, role, password FROM users WHERE email = ?", (email,))
        if row is None:
            raise NotFoundError("user not found")
        return _user_from_row(row)

    def list_all(self) -> list[User]:
        """Return every user."""
        return [_user_from_row(row) for row in self._all("SELECT id, name, email, role, password FROM users")]


def _vendor_from_row(row: Sequence[Any]) -> Vendor:
    return Vendor(id=_text(row[0]), name=_text(row[1]), email=_text(row[2]), phone=_text(row[3]))


class VendorRepository(_Repository):
    """Storage for vendors."""

    def create(self, vendor: Vendor) -> None:
        """Insert the vendor under its own id."""
        self._write(
            "INSERT INTO vendors (id, name, email, phone) VALUES (?, ?, ?, ?)",
            (vendor.id, vendor.name, vendor.email, vendor.phone),
        )

    def update(self, vendor: Vendor) -> None:
        """Overwrite the stored vendor that has the same id."""
        self._write(
            "UPDATE vendors SET name = ?, email = ?, phone = ? WHERE id = ?",
            (vendor.name, vendor.email, vendor.phone, vendor.id),
        )

    def get_by_id(self, vendor_id: str) -> Vendor:
        """Return the vendor with this id; raise NotFoundError if missing."""
        row = self._one("SELECT id, name, email, phone FROM vendors WHERE id = ?", (vendor_id,))
        if row is None:
            raise NotFoundError("vendor not found")
        return _vendor_from_row(row)

    def list_all(self) -> list[Vendor]:
        """Return every vendor."""
        return [_vendor_from_row(row) for row in self._all("SELECT id, name, email, phone FROM vendors")]