"""Booking service for vendors: records, SQL repositories, business rules and a WSGI JSON API."""

__version__ = "1.0.0"