import sqlite3

import pytest

from brbsvc.domain import Booking, Service, User, Vendor
from brbsvc.repository import (
    BookingRepository,
    NotFoundError,
    ServiceRepository,
    UserRepository,
    VendorRepository,
)

SCHEMA = """
CREATE TABLE bookings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT,
    vendor_id INTEGER,
    service_id TEXT,
    start_time TEXT,
    end_time TEXT,
    status TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE services (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    description TEXT,
    active BOOLEAN DEFAULT TRUE
);
CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT,
    email TEXT,
    role TEXT,
    password TEXT
);
CREATE TABLE vendors (
    id TEXT PRIMARY KEY,
    name TEXT,
    email TEXT,
    phone TEXT
);
"""


@pytest.fixture
def conn():
    connection = sqlite3.connect(":memory:")
    connection.executescript(SCHEMA)
    yield connection
    connection.close()


class _RecordingCursor:
    def __init__(self, log):
        self._log = log

    def execute(self, query, params):
        self._log.append((query, params))

    def fetchone(self):
        return (5,)

    def close(self):
        pass


class _RecordingConnection:
    def __init__(self):
        self.log = []

    def cursor(self):
        return _RecordingCursor(self.log)

    def commit(self):
        pass

    def rollback(self):
        pass


def _booking(vendor_id=1, start="2024-05-01T10:00:00Z", end="2024-05-01T11:00:00Z", status="pending"):
    return Booking(user_id="u-1", vendor_id=vendor_id, service_id="s-1", start_time=start, end_time=end, status=status)


def test_unknown_paramstyle_is_rejected(conn):
    with pytest.raises(ValueError):
        BookingRepository(conn, paramstyle="named")


@pytest.mark.parametrize(
    "paramstyle, fragment",
    [("dollar", "vendor_id = $1 AND status = $2"), ("format", "vendor_id = %s AND status = %s")],
)
def test_placeholders_follow_paramstyle(paramstyle, fragment):
    recording = _RecordingConnection()
    repo = BookingRepository(recording, paramstyle=paramstyle)
    assert repo.count_by_status(3, "pending") == 5
    query, params = recording.log[0]
    assert fragment in query
    assert params == (3, "pending")


def test_overlap_query_passes_end_before_start():
    recording = _RecordingConnection()
    repo = BookingRepository(recording, paramstyle="dollar")
    assert repo.find_overlapping_booking(9, "start", "end") is True
    query, params = recording.log[0]
    assert "start_time < $2 AND end_time > $3" in query
    assert params == (9, "end", "start")


def test_booking_create_assigns_increasing_ids(conn):
    repo = BookingRepository(conn, paramstyle="qmark")
    first, second = _booking(), _booking()
    first_id = repo.create(first)
    second_id = repo.create(second)
    assert first.id == first_id
    assert second.id == second_id
    assert second_id > first_id


def test_booking_get_by_id_reads_created_at_into_start_time(conn):
    repo = BookingRepository(conn, paramstyle="qmark")
    booking = _booking()
    repo.create(booking)
    stored = repo.get_by_id(booking.id)
    created_at = conn.execute("SELECT created_at FROM bookings WHERE id = ?", (booking.id,)).fetchone()[0]
    assert stored.start_time == created_at
    assert (stored.id, stored.user_id, stored.vendor_id, stored.service_id) == (booking.id, "u-1", 1, "s-1")
    assert (stored.end_time, stored.status) == (booking.end_time, booking.status)


def test_booking_get_by_id_missing_returns_none(conn):
    assert BookingRepository(conn, paramstyle="qmark").get_by_id(404) is None


def test_vendor_bookings_and_counts(conn):
    repo = BookingRepository(conn, paramstyle="qmark")
    for status in ("pending", "pending", "confirmed"):
        repo.create(_booking(vendor_id=1, status=status))
    repo.create(_booking(vendor_id=2, status="completed"))

    assert [b.status for b in repo.get_vendor_bookings(1)] == ["pending", "pending", "confirmed"]
    assert repo.get_vendor_bookings(3) == []
    assert repo.count_total_by_vendor(1) == 3
    assert repo.count_by_status(1, "pending") == 2
    assert repo.count_by_status(1, "completed") == 0
    assert repo.count_total_by_vendor(2) == 1


def test_find_overlapping_booking(conn):
    repo = BookingRepository(conn, paramstyle="qmark")
    repo.create(_booking(vendor_id=1))
    assert repo.find_overlapping_booking(1, "2024-05-01T10:30:00Z", "2024-05-01T11:30:00Z") is True
    assert repo.find_overlapping_booking(1, "2024-05-01T11:00:00Z", "2024-05-01T12:00:00Z") is False
    assert repo.find_overlapping_booking(1, "2024-05-01T09:00:00Z", "2024-05-01T10:00:00Z") is False
    assert repo.find_overlapping_booking(2, "2024-05-01T10:30:00Z", "2024-05-01T11:30:00Z") is False


def test_service_create_get_update_list(conn):
    repo = ServiceRepository(conn, paramstyle="qmark")
    service = Service(name="Haircut", description="Short cut", active=True)
    repo.create(service)
    assert repo.get_by_id(service.id) == service

    service.active = False
    service.description = "Long cut"
    repo.update(service)
    assert repo.get_by_id(service.id) == service

    other = Service(name="Shave", active=True)
    repo.create(other)
    assert repo.list_all() == [service, other]


def test_service_missing_raises(conn):
    with pytest.raises(NotFoundError, match="service not found"):
        ServiceRepository(conn, paramstyle="qmark").get_by_id(1)


def test_service_list_empty(conn):
    assert ServiceRepository(conn, paramstyle="qmark").list_all() == []


def test_user_create_and_lookups(conn):
    repo = UserRepository(conn, paramstyle="qmark")
    password = "password"
    user = User(name="Ana", email="ana@example.com", role="customer", password=password)
    new_id = repo.create(user)
    assert user.id == new_id
    assert repo.get_by_id(int(new_id)) == user
    assert repo.get_by_email("ana@example.com") == user
    assert repo.list_all() == [user]


def test_user_missing_raises(conn):
    repo = UserRepository(conn, paramstyle="qmark")
    with pytest.raises(NotFoundError, match="user not found"):
        repo.get_by_id(1)
    with pytest.raises(NotFoundError, match="user not found"):
        repo.get_by_email("nobody@example.com")


def test_vendor_create_get_update_list(conn):
    repo = VendorRepository(conn, paramstyle="qmark")
    vendor = Vendor(id="v-1", name="Shop", email="shop@example.com", phone="phone-1")
    repo.create(vendor)
    assert repo.get_by_id("v-1") == vendor

    vendor.name = "Better Shop"
    repo.update(vendor)
    assert repo.get_by_id("v-1").name == "Better Shop"
    assert repo.list_all() == [vendor]


def test_vendor_duplicate_id_fails_and_rolls_back(conn):
    repo = VendorRepository(conn, paramstyle="qmark")
    vendor = Vendor(id="v-1", name="Shop", email="shop@example.com", phone="phone-1")
    repo.create(vendor)
    with pytest.raises(sqlite3.IntegrityError):
        repo.create(Vendor(id="v-1", name="Copy", email="copy@example.com", phone="phone-2"))
    assert repo.list_all() == [vendor]


def test_vendor_missing_raises(conn):
    with pytest.raises(NotFoundError, match="vendor not found"):
        VendorRepository(conn, paramstyle="qmark").get_by_id("absent")