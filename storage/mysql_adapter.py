"""
storage/mysql_adapter.py
------------------------
MySQL storage adapter and its batch implementation.

Design Decisions:
    * :class:`MySqlAdapter` owns its connection settings and every batch it
      hands out; disposing the adapter disposes any batch still registered.
    * :class:`MySqlBatch` owns exactly one connection/transaction for its
      lifetime. Statements run sequentially on that connection.
    * Values always travel as driver parameters (``%s``); identifiers are
      backtick-quoted through :func:`quote_identifier`, never spliced in raw.
    * ``commit()`` failure leaves the batch OPEN with its connection so the
      caller decides between retrying and ``dispose()``.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import mysql.connector

from logger import get_logger
from models.definitions import StorageDefinition
from models.validation import ensure_valid_storage_definition
from storage import database, schema
from storage.base import Batch, BatchState, StorageAdapter, normalize_fields
from storage.database import MySqlConnectionSettings
from storage.errors import BatchNotOpenError, StorageError
from storage.types import quote_identifier

log = get_logger(__name__)


def _assignments(columns: Sequence[str], joiner: str) -> str:
    return joiner.join(f"{quote_identifier(c)} = %s" for c in columns)


def build_insert_sql(table: str, columns: Sequence[str]) -> str:
    placeholders = ", ".join(["%s"] * len(columns))
    column_list = ", ".join(quote_identifier(c) for c in columns)
    return f"INSERT INTO {quote_identifier(table)} ({column_list}) VALUES ({placeholders})"


def build_update_sql(table: str, columns: Sequence[str], where: Sequence[str] = ()) -> str:
    sql = f"UPDATE {quote_identifier(table)} SET {_assignments(columns, ', ')}"
    if where:
        sql += f" WHERE {_assignments(where, ' AND ')}"
    return sql


def build_delete_sql(table: str, key_columns: Sequence[str]) -> str:
    return f"DELETE FROM {quote_identifier(table)} WHERE {_assignments(key_columns, ' AND ')}"


class MySqlBatch(Batch):
    """
    One MySQL transaction.

    Args:
        adapter: Owning adapter; supplies settings and the batch registry.
    """

    def __init__(self, adapter: "MySqlAdapter") -> None:
        super().__init__()
        self._adapter = adapter
        self._connection = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> None:
        if self.state is BatchState.OPEN:
            log.warning("Batch already opened.")
            return
        if self.state.is_terminal:
            raise BatchNotOpenError("open", self.state.value)

        connection = database.connect(self._adapter.settings, scoped=True)
        try:
            connection.start_transaction()
        except mysql.connector.Error as exc:
            database.close_quietly(connection)
            raise database.translate_error(exc) from exc

        self._connection = connection
        self.state = BatchState.OPEN
        log.debug("Batch %s opened.", self.handle)

    def commit(self) -> None:
        if self.state is not BatchState.OPEN:
            log.error("Batch is not open, nothing to commit.")
            raise BatchNotOpenError("commit", self.state.value)

        try:
            self._connection.commit()
        except mysql.connector.Error as exc:
            log.error("Failed to commit batch %s: %s", self.handle, exc)
            raise database.translate_error(exc) from exc

        database.close_quietly(self._connection)
        self._connection = None
        self.state = BatchState.COMMITTED
        self._adapter.release_batch(self)
        log.debug("Batch %s committed.", self.handle)

    def dispose(self) -> None:
        if self._connection is not None:
            database.rollback_quietly(self._connection)
            database.close_quietly(self._connection)
            self._connection = None
        if self.state is not BatchState.COMMITTED:
            self.state = BatchState.DISPOSED
        self._adapter.release_batch(self)

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def _execute(self, operation: str, sql: str, params: list[Any]) -> int:
        self._require_open(operation)
        return database.execute(self._connection, sql, params)

    def insert(
        self,
        table: str,
        columns: Sequence[str] | Mapping[str, Any],
        values: Sequence[Any] | None = None,
    ) -> int:
        cols, vals = normalize_fields(columns, values)
        return self._execute("insert", build_insert_sql(table, cols), vals)

    def update(
        self,
        table: str,
        columns: Sequence[str] | Mapping[str, Any],
        values: Sequence[Any] | None = None,
        where: Mapping[str, Any] | None = None,
    ) -> int:
        cols, vals = normalize_fields(columns, values)
        where = where or {}
        sql = build_update_sql(table, cols, list(where.keys()))
        return self._execute("update", sql, vals + list(where.values()))

    def delete(self, table: str, key: Mapping[str, Any]) -> int:
        if not key:
            raise ValueError("delete requires primary key values")
        return self._execute("delete", build_delete_sql(table, list(key.keys())), list(key.values()))

    def savepoint(self, name: str) -> None:
        self._execute("savepoint", f"SAVEPOINT {quote_identifier(name)}", [])

    def rollback_to(self, name: str) -> None:
        self._execute("rollback", f"ROLLBACK TO SAVEPOINT {quote_identifier(name)}", [])

    def release(self, name: str) -> None:
        self._execute("release", f"RELEASE SAVEPOINT {quote_identifier(name)}", [])


class MySqlAdapter(StorageAdapter):
    """
    Storage adapter for MySQL.

    Example::

        adapter = MySqlAdapter(MySqlConnectionSettings(user="root", database="shop"))
        adapter.create_storage(storage_definition, drop_existing=True)
        with adapter.create_batch() as batch:
            batch.insert("users", {"id": 1, "name": "Alice"})
            batch.commit()
        adapter.dispose()
    """

    def __init__(self, settings: MySqlConnectionSettings) -> None:
        super().__init__()
        self.settings = settings

    def create_storage(self, storage_definition: StorageDefinition, drop_existing: bool = False) -> int:
        """
        Create the database and all tables of *storage_definition*.

        Raises:
            ConfigurationError:     Missing user or database (before any I/O).
            StorageDefinitionError: Definition failed validation.
            TypeCoercionError:      A default cannot be rendered (before any I/O).
            StorageError:           Any backend failure.
        """
        self.settings.validate()
        name = self.settings.database
        log.info("Creating new storage '%s':", name)
        log.info("  drop existing storage: %s", drop_existing)
        ensure_valid_storage_definition(storage_definition)

        try:
            statements = schema.build_schema_statements(storage_definition)
            if drop_existing:
                schema.drop_storage(self.settings, name)
            schema.create_storage(self.settings, name)
            created = schema.create_tables(self.settings, storage_definition, statements)
        except StorageError as exc:
            log.error("Storage '%s' was not created: %s", name, exc)
            raise

        log.info("Storage '%s' created with %d table(s).", name, created)
        return created

    def create_batch(self) -> MySqlBatch:
        if self._disposed:
            raise StorageError("Adapter has been disposed.")
        self.settings.validate()
        log.info("Creating new batch for database '%s'.", self.settings.database)
        batch = MySqlBatch(self)
        self._batches.add(batch)
        return batch


def get_adapter(connection_config: Mapping[str, Any]) -> MySqlAdapter:
    """Build an adapter from a ``connections.mysql`` config block."""
    return MySqlAdapter(MySqlConnectionSettings.from_dict(dict(connection_config)))
