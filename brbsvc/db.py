"""Opening, closing and migrating the PostgreSQL connection."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

log = logging.getLogger(__name__)

_VENDORS_TABLE = """
CREATE TABLE IF NOT EXISTS vendors (
    id SERIAL PRIMARY KEY,
    name VARCHAR(255) NOT NULL,
    email VARCHAR(255) NOT NULL UNIQUE,
    phone VARCHAR(20) NOT NULL
);
"""


@dataclass(frozen=True)
class DBConfig:
    """Connection settings for the database server."""

    db_user: str = ""
    db_password: str = ""
    db_host: str = ""
    db_port: str = ""
    db_name: str = ""
    ssl_mode: str = ""

    def dsn(self) -> str:
        """Return the connection URL built from these settings."""
        return (
            f"postgres://{self.db_user}:{self.db_password}@{self.db_host}:"
            f"{self.db_port}/{self.db_name}?sslmode={self.ssl_mode}"
        )


def _ping(conn: Any) -> None:
    cursor = conn.cursor()
    try:
        cursor.execute("SELECT 1")
        cursor.fetchone()
    finally:
        cursor.close()


def connect(cfg: DBConfig, connector: Callable[[str], Any]) -> Any:
    """Open a connection with ``connector(dsn)`` and check that it answers.

    Raises ConnectionError if the connection cannot be opened or pinged.
    """
    try:
        conn = connector(cfg.dsn())
    except Exception as exc:
        raise ConnectionError(f"Failed to connect to DB: {exc}") from exc
    try:
        _ping(conn)
    except Exception as exc:
        raise ConnectionError(f"Unable to ping DB: {exc}") from exc
    log.info("Connected to PostgreSQL")
    return conn


def close(conn: Any) -> None:
    """Close the connection, raising ConnectionError if that fails."""
    try:
        conn.close()
    except Exception as exc:
        raise ConnectionError(f"Failed to close DB connection: {exc}") from exc
    log.info("Closed PostgreSQL connection")


def migrate(conn: Any) -> None:
    """Create the tables the service needs if they are missing."""
    try:
        cursor = conn.cursor()
        try:
            cursor.execute(_VENDORS_TABLE)
        finally:
            cursor.close()
        conn.commit()
    except Exception as exc:
        raise RuntimeError(f"Failed to migrate DB: {exc}") from exc
    log.info("Migrated PostgreSQL")