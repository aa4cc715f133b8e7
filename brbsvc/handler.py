"""HTTP handlers for health, vendor summaries and booking creation."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Callable, Iterable

from .domain import Booking

log = logging.getLogger(__name__)

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_DECIMAL = re.compile(r"[+-]?[0-9]+")
_SUMMARY_PREFIX = "/summary/vendor/"


@dataclass
class Response:
    """An HTTP response: status code, body and headers."""

    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")

    def json(self) -> Any:
        """Decode the body as JSON."""
        return json.loads(self.body)


def _error(message: str, status: int) -> Response:
    return Response(
        status,
        (message + "\n").encode("utf-8"),
        {"Content-Type": "text/plain; charset=utf-8", "X-Content-Type-Options": "nosniff"},
    )


def _encode(payload: Any) -> bytes:
    return (json.dumps(payload, separators=(",", ":")) + "\n").encode("utf-8")


def _ping(db: Any) -> None:
    cursor = db.cursor()
    try:
        cursor.execute("SELECT 1")
        cursor.fetchone()
    finally:
        cursor.close()


def _parse_int64(text: str) -> int:
    if not _DECIMAL.fullmatch(text):
        raise ValueError(f"invalid integer: {text!r}")
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f"integer out of range: {text!r}")
    return value


class Handler:
    """Serves the booking API; also usable as a WSGI application."""

    def __init__(self, booking_usecase: Any, db: Any = None) -> None:
        self.booking_usecase = booking_usecase
        self.db = db

    def health_check(self) -> Response:
        """Report whether the database connection answers."""
        try:
            if self.db is None:
                raise ConnectionError("no database connection")
            _ping(self.db)
        except Exception:
            return _error('{"status":"DB disconnected"}', HTTPStatus.INTERNAL_SERVER_ERROR)
        return Response(HTTPStatus.OK, b'{"status":"OK"}', {"Content-Type": "application/json"})

    def vendor_summary(self, path: str) -> Response:
        """Return the booking summary for the vendor id in the path."""
        parts = path.split("/")
        if len(parts) < 4:
            return _error("Missing vendor ID", HTTPStatus.BAD_REQUEST)
        try:
            vendor_id = _parse_int64(parts[3])
        except ValueError:
            return _error("Invalid vendor ID", HTTPStatus.BAD_REQUEST)

        try:
            summary = self.booking_usecase.get_vendor_summary(vendor_id)
        except Exception:
            log.exception("Failed to fetch summary for vendor %d", vendor_id)
            return _error("Failed to fetch summary", HTTPStatus.INTERNAL_SERVER_ERROR)

        payload = summary.to_json()
        payload["StatusCounts"] = dict(sorted(payload["StatusCounts"].items()))
        return Response(HTTPStatus.OK, _encode(payload), {"Content-Type": "application/json"})

    def create_booking(self, body: bytes | str) -> Response:
        """Create a booking from a JSON request body."""
        if isinstance(body, bytes):
            try:
                body = body.decode("utf-8")
            except UnicodeDecodeError:
                return _error("Invalid request payload", HTTPStatus.BAD_REQUEST)
        try:
            data, _ = json.JSONDecoder().raw_decode(body.lstrip())
            if data is None:
                raise ValueError("empty booking payload")
            booking = Booking.from_json(data)
        except ValueError:
            return _error("Invalid request payload", HTTPStatus.BAD_REQUEST)
        log.debug("Booking end time: %s", booking.end_time)

        try:
            self.booking_usecase.create_booking(booking)
        except Exception as exc:
            return _error(f"Failed to create booking: {exc}", HTTPStatus.INTERNAL_SERVER_ERROR)
        log.info("Booking %s created", booking.id)

        return Response(
            HTTPStatus.CREATED,
            _encode({"id": booking.id, "message": "Booking created"}),
            {"Content-Type": "text/plain; charset=utf-8"},
        )

    def dispatch(self, method: str, path: str, body: bytes | str = b"") -> Response:
        """Route a request to the matching handler."""
        if path.startswith(_SUMMARY_PREFIX):
            return self.vendor_summary(path)
        routes = {"/health": ("GET", self.health_check), "/bookings": ("POST", None)}
        if path not in routes:
            return _error("404 page not found", HTTPStatus.NOT_FOUND)
        allowed, _ = routes[path]
        if method.upper() != allowed:
            response = _error("Method Not Allowed", HTTPStatus.METHOD_NOT_ALLOWED)
            response.headers["Allow"] = allowed
            return response
        if path == "/health":
            return self.health_check()
        return self.create_booking(body)

    def __call__(self, environ: dict[str, Any], start_response: Callable[..., Any]) -> Iterable[bytes]:
        method = environ.get("REQUEST_METHOD", "GET")
        path = environ.get("PATH_INFO", "") or "/"
        try:
            length = int(environ.get("CONTENT_LENGTH") or 0)
        except ValueError:
            length = 0
        stream = environ.get("wsgi.input")
        body = stream.read(length) if stream is not None and length > 0 else b""

        response = self.dispatch(method, path, body)
        status = HTTPStatus(response.status)
        headers = dict(response.headers)
        headers["Content-Length"] = str(len(response.body))
        start_response(f"{status.value} {status.phrase}", list(headers.items()))
        return [response.body]