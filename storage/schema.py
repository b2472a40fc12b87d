"""
storage/schema.py
-----------------
Schema synthesizer: turns a storage definition into MySQL DDL and runs it.

Design Decisions:
    * SQL generation (``build_*``) is pure and separate from execution so the
      statements can be unit-tested without a server.
    * ``create_tables`` runs every table in definition order inside ONE
      transaction on ONE connection. It is fail-fast: the first coercion or
      statement error stops the run, undoes what the call created and is
      re-raised.
    * All DDL is synthesised by ``build_schema_statements`` before the
      server is touched, so callers can run it ahead of a destructive
      ``drop database``.
    * ``create``/``drop database`` need an admin connection (no database
      selected); table DDL needs a connection scoped to the database.
"""
from __future__ import annotations

import mysql.connector

from models.definitions import (
    ColumnDefinition,
    StorageDefinition,
    StorageType,
    TableDefinition,
)
from logger import get_logger
from storage import database
from storage.database import MySqlConnectionSettings
from storage.errors import StorageError
from storage.types import coerce_default, map_type, quote_identifier

log = get_logger(__name__)

STRING_CHARSET = "utf8"


# ---------------------------------------------------------------------------
# SQL generation
# ---------------------------------------------------------------------------

def build_column_sql(column: ColumnDefinition) -> str:
    """
    Render one column clause.

    Example::

        build_column_sql(ColumnDefinition("name", StorageType.STRING, length=50, nullable=False))
        →  "`name` varchar(50) charset utf8 not null"

    Raises:
        UnsupportedTypeError, InvalidValueTypeError, DefaultValueUnsupportedError
    """
    parts = [quote_identifier(column.name), map_type(column.type)]
    if column.length is not None:
        parts[-1] += f"({int(column.length)})"
    if column.type == StorageType.STRING:
        parts.append(f"charset {STRING_CHARSET}")
    parts.append("null" if column.nullable else "not null")
    if column.has_default:
        parts.append(f"default {coerce_default(column.type, column.default_value)}")
    if column.autoincrement:
        parts.append("auto_increment")
    return " ".join(parts)


def _column_list(names) -> str:
    return ", ".join(quote_identifier(n) for n in names)


def build_create_table_sql(table: TableDefinition) -> str:
    """
    Render ``create table if not exists`` for *table*.

    Clause order: columns, primary key, indexes, foreign keys.
    """
    rows = [build_column_sql(col) for col in table.columns]

    if table.primary_key:
        rows.append(f"primary key ({_column_list(table.primary_key)})")

    for index in table.indexes.values():
        keyword = "unique index" if index.unique else "index"
        rows.append(f"{keyword} {quote_identifier(index.name)} ({_column_list(index.columns)})")

    for fk in table.foreign_keys:
        clause = ""
        if fk.name:
            clause = f"constraint {quote_identifier(fk.name)} "
        clause += (
            f"foreign key ({quote_identifier(fk.column)}) "
            f"references {quote_identifier(fk.foreign_table)} ({quote_identifier(fk.foreign_field)})"
        )
        rows.append(clause)

    body = ",\n    ".join(rows)
    return f"create table if not exists {quote_identifier(table.name)} (\n    {body}\n)"


def build_drop_database_sql(name: str) -> str:
    return f"drop database if exists {quote_identifier(name)}"


def build_create_database_sql(name: str) -> str:
    return f"create database {quote_identifier(name)}"


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

def _run_admin(settings: MySqlConnectionSettings, sql: str) -> None:
    connection = database.connect(settings, scoped=False)
    try:
        database.execute(connection, sql)
    finally:
        database.close_quietly(connection)


def drop_storage(settings: MySqlConnectionSettings, name: str) -> None:
    """Drop database *name*; no error when it does not exist."""
    log.info("  Dropping storage '%s'...", name)
    try:
        _run_admin(settings, build_drop_database_sql(name))
    except StorageError as exc:
        log.error("  Failed to drop existing storage '%s': %s", name, exc)
        raise
    log.info("  Existing storage '%s' dropped.", name)


def create_storage(settings: MySqlConnectionSettings, name: str) -> None:
    """Create database *name*; fails if it already exists."""
    log.info("  Creating new storage '%s'...", name)
    try:
        _run_admin(settings, build_create_database_sql(name))
    except StorageError as exc:
        log.error("  Failed to create new storage '%s': %s", name, exc)
        raise
    log.info("  New storage '%s' created.", name)


def _table_exists(connection, database_name: str, table_name: str) -> bool:
    row = database.fetch_one(
        connection,
        "select count(*) from information_schema.tables "
        "where table_schema = %s and table_name = %s",
        (database_name, table_name),
    )
    return bool(row and row[0])


def _drop_created(connection, names: list[str]) -> None:
    # MySQL commits DDL implicitly, so rollback alone cannot undo a table.
    for name in reversed(names):
        try:
            database.execute(connection, f"drop table if exists {quote_identifier(name)}")
            log.info("    Table '%s' dropped.", name)
        except StorageError as exc:
            log.error("    Failed to drop table '%s' during cleanup: %s", name, exc)


def build_schema_statements(definition: StorageDefinition) -> list[tuple[str, str]]:
    """
    Synthesise ``create table`` for every table, in definition order.

    Returns:
        ``(table name, sql)`` pairs.

    Raises:
        The first coercion error; nothing has touched the server yet.
    """
    statements: list[tuple[str, str]] = []
    for table in definition.tables.values():
        try:
            statements.append((table.name, build_create_table_sql(table)))
        except StorageError as exc:
            log.error("    Failed to create table '%s': %s", table.name, exc)
            raise
    return statements


def create_tables(
    settings: MySqlConnectionSettings,
    definition: StorageDefinition,
    statements: list[tuple[str, str]] | None = None,
) -> int:
    """
    Create every table of *definition* atomically.

    Statements run in definition order inside one transaction; on the first
    failure the transaction is rolled back and tables created by this call
    are dropped again. Tables that already existed are left alone.

    Args:
        settings:   Connection settings (database-scoped connection).
        definition: Tables to create.
        statements: Output of :func:`build_schema_statements`, when the
                    caller has already synthesised it.

    Returns:
        Number of tables created by this call.

    Raises:
        The first :class:`StorageError` encountered (coercion, DDL or
        transport).
    """
    log.info("  Creating tables...")
    if statements is None:
        statements = build_schema_statements(definition)

    connection = database.connect(settings, scoped=True)
    created: list[str] = []
    try:
        try:
            connection.start_transaction()
        except mysql.connector.Error as exc:
            raise database.translate_error(exc) from exc
        for name, sql in statements:
            log.info("    Creating new table '%s'...", name)
            existed = _table_exists(connection, settings.database, name)
            try:
                database.execute(connection, sql)
            except StorageError as exc:
                log.error("    Failed to create table '%s': %s", name, exc)
                raise
            if existed:
                log.info("    Table '%s' already exists.", name)
            else:
                created.append(name)
                log.info("    Table '%s' created.", name)
        try:
            connection.commit()
        except mysql.connector.Error as exc:
            raise database.translate_error(exc) from exc
    except Exception:
        database.rollback_quietly(connection)
        _drop_created(connection, created)
        log.error("  Table creation rolled back; tables created by this run were dropped.")
        raise
    finally:
        database.close_quietly(connection)

    log.info("  %d tables created.", len(created))
    return len(created)
