"""
storage/database.py
-------------------
MySQL connection settings and low-level connection helpers.

Design Decisions:
    * One :class:`MySqlConnectionSettings` holds the base credentials; two
      parameter sets are derived from it: an *admin* set without a database
      (for ``create database`` / ``drop database``) and a *scoped* set bound
      to the target database (for DDL on tables and for batches).
    * Required fields are checked before any I/O so configuration mistakes
      surface as :class:`ConfigurationError`, not as driver errors.
    * Transient connection failures are retried with linear back-off
      (configurable via ``max_retries`` / ``retry_delay``).
    * Driver exceptions are translated at this boundary: transport failures
      become :class:`ConnectionLostError`, anything else raised by a
      statement becomes :class:`StatementError`.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

import mysql.connector
from mysql.connector import errors as mysql_errors

from config import CONFIG
from logger import get_logger, get_sql_logger
from storage.errors import ConfigurationError, ConnectionLostError, StatementError

log = get_logger(__name__)
sql_log = get_sql_logger()

_TRANSPORT_ERRORS = (mysql_errors.InterfaceError, mysql_errors.OperationalError)


@dataclass(frozen=True)
class MySqlConnectionSettings:
    """
    Connection block for the ``mysql`` provider.

    Attributes:
        host, port:       Server address (defaults from ``DB_HOST``/``DB_PORT``).
        user, password:   Credentials; ``password`` falls back to ``DB_PASSWORD``.
        database:         Target database (created by ``create_storage``).
        charset:          Connection character set.
        connect_timeout:  Seconds before a connect attempt fails.
        time_zone:        Session time zone, UTC by default.
        max_retries:      Connect attempts before giving up.
        retry_delay:      Base delay between attempts (multiplied by attempt).
    """
    user: str | None = None
    password: str | None = None
    database: str | None = None
    host: str = field(default_factory=lambda: CONFIG.db.host)
    port: int = field(default_factory=lambda: CONFIG.db.port)
    charset: str = field(default_factory=lambda: CONFIG.db.charset)
    connect_timeout: int = field(default_factory=lambda: CONFIG.db.connect_timeout)
    time_zone: str = "+00:00"
    max_retries: int = 3
    retry_delay: float = 1.0

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "MySqlConnectionSettings":
        known = {
            "user", "password", "database", "host", "port", "charset",
            "connect_timeout", "time_zone", "max_retries", "retry_delay",
        }
        unknown = sorted(set(data) - known)
        if unknown:
            log.warning("Ignoring unknown connection setting(s): %s", ", ".join(unknown))
        params = {k: v for k, v in data.items() if k in known}
        if params.get("password") is None and CONFIG.db.password is not None:
            params["password"] = CONFIG.db.password
        if "port" in params:
            params["port"] = int(params["port"])
        return MySqlConnectionSettings(**params)

    def validate(self) -> None:
        """
        Raises:
            ConfigurationError: If the user login or database name is missing.
        """
        if not self.user:
            raise ConfigurationError("Database connection settings are missing user login.")
        if not self.database:
            raise ConfigurationError("Database name is not specified in connection parameters.")

    def _base_params(self) -> dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password or "",
            "charset": self.charset,
            "connection_timeout": self.connect_timeout,
            "time_zone": self.time_zone,
            "autocommit": False,
        }

    def admin_params(self) -> dict[str, Any]:
        """Connection parameters without a selected database."""
        return self._base_params()

    def scoped_params(self) -> dict[str, Any]:
        """Connection parameters bound to the target database."""
        params = self._base_params()
        params["database"] = self.database
        return params

    def describe(self) -> str:
        return f"{self.user}@{self.host}:{self.port}/{self.database or ''}"


def connect(settings: MySqlConnectionSettings, scoped: bool = True):
    """
    Open a MySQL connection with retries.

    Args:
        settings: Base connection settings.
        scoped:   Select the target database (False for admin connections).

    Raises:
        ConnectionLostError: If every attempt fails.
    """
    params = settings.scoped_params() if scoped else settings.admin_params()
    attempts = max(1, settings.max_retries)
    last_exc: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            log.debug(
                "Connecting to MySQL at %s:%s (attempt %d/%d)",
                settings.host, settings.port, attempt, attempts,
            )
            return mysql.connector.connect(**params)
        except mysql_errors.ProgrammingError as exc:
            # Access denied or unknown database.
            raise ConnectionLostError(f"Cannot connect to {settings.describe()}: {exc}") from exc
        except mysql.connector.Error as exc:
            last_exc = exc
            log.warning("Connection attempt %d failed: %s", attempt, exc)
            if attempt < attempts:
                time.sleep(settings.retry_delay * attempt)
    raise ConnectionLostError(
        f"Could not connect to MySQL at {settings.host}:{settings.port} "
        f"after {attempts} attempt(s): {last_exc}"
    )


def translate_error(exc: Exception, sql: str | None = None) -> Exception:
    """Map a driver exception onto the package taxonomy."""
    if isinstance(exc, _TRANSPORT_ERRORS):
        return ConnectionLostError(str(exc))
    return StatementError(str(exc), sql=sql)


def execute(connection, sql: str, params: tuple | list | None = None) -> int:
    """
    Run one statement on *connection* and return the affected row count.

    Raises:
        ConnectionLostError: On transport failures.
        StatementError:      On any other driver error.
    """
    sql_log.debug("%s | params=%r", sql, params)
    try:
        cursor = connection.cursor()
        try:
            cursor.execute(sql, tuple(params) if params is not None else None)
            return cursor.rowcount
        finally:
            cursor.close()
    except mysql.connector.Error as exc:
        log.error("SQL execution error: %s | SQL: %.500s", exc, sql)
        raise translate_error(exc, sql) from exc


def close_quietly(connection) -> None:
    """Close *connection*, logging instead of raising on failure."""
    if connection is None:
        return
    try:
        connection.close()
    except Exception as exc:
        log.warning("Failed to close connection: %s", exc)


def rollback_quietly(connection) -> bool:
    """Roll back the open transaction; returns False (and logs) on failure."""
    try:
        connection.rollback()
        log.debug("Transaction rolled back.")
        return True
    except Exception as exc:
        log.error("Failed to rollback transaction: %s", exc)
        return False


def fetch_one(connection, sql: str, params: tuple | list | None = None) -> tuple | None:
    """Run a query on *connection* and return its first row (or None)."""
    sql_log.debug("%s | params=%r", sql, params)
    try:
        cursor = connection.cursor(buffered=True)
        try:
            cursor.execute(sql, tuple(params) if params is not None else None)
            return cursor.fetchone()
        finally:
            cursor.close()
    except mysql.connector.Error as exc:
        log.error("SQL query error: %s | SQL: %.500s", exc, sql)
        raise translate_error(exc, sql) from exc
