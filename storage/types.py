"""
storage/types.py
----------------
MySQL type system: storage type → native column type mapping and
default-value coercion into SQL literals.

Design Decision:
    Pure functions with no side effects, so the rules are testable without
    a server. The mapping is data (a dict) rather than a branch tree;
    coercion dispatches on the declared storage type.

Note:
    :func:`pad_number` keeps the historical padding of date/time
    components: values below 10 are rendered bare and values of 10 or more
    get a leading ``0``.
"""
from __future__ import annotations

import datetime
from typing import Any

from mysql.connector.conversion import MySQLConverter

from models.definitions import StorageType
from storage.errors import (
    DefaultValueUnsupportedError,
    InvalidValueTypeError,
    UnsupportedTypeError,
)

TABLE_TYPES: dict[StorageType, str] = {
    StorageType.STRING: "varchar",
    StorageType.INT: "int",
    StorageType.FLOAT: "double",
    StorageType.DECIMAL: "decimal",
    StorageType.BOOLEAN: "bit",
    StorageType.BYTE_ARRAY: "longblob",
    StorageType.DATETIME: "datetime",
    StorageType.DATE: "date",
    StorageType.TIME: "time",
}

TRUE_LITERAL = "1"
FALSE_LITERAL = "0"
NULL_LITERAL = "null"

_converter = MySQLConverter()


def map_type(storage_type: StorageType | str) -> str:
    """
    Return the MySQL column type for *storage_type*.

    Raises:
        UnsupportedTypeError: If the type has no MySQL mapping.
    """
    try:
        return TABLE_TYPES[StorageType(storage_type)]
    except (KeyError, ValueError):
        raise UnsupportedTypeError(storage_type) from None


def quote_identifier(name: str) -> str:
    """Backtick-quote a table/column/index name, doubling embedded backticks."""
    return "`" + str(name).replace("`", "``") + "`"


def escape_string(value: str) -> str:
    """Escape *value* for use inside a single-quoted MySQL string literal."""
    escaped = _converter.escape(value)
    if isinstance(escaped, bytes):
        escaped = escaped.decode("utf-8")
    return escaped


def pad_number(value: int) -> str:
    """
    Render a date/time component.

    Examples::

        pad_number(5)   →  "5"
        pad_number(12)  →  "012"
    """
    return str(value) if value < 10 else "0" + str(value)


def date_to_sql(value: datetime.date) -> str:
    # Leading component is the year, not the day of month.
    return f"{value.year}-{pad_number(value.month)}-{pad_number(value.day)}"


def time_to_sql(value: datetime.time | datetime.datetime) -> str:
    return f"{pad_number(value.hour)}:{pad_number(value.minute)}:{pad_number(value.second)}"


def _type_name(value: Any) -> str:
    return type(value).__name__


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _to_number(value: Any, integral: bool) -> int | float:
    if _is_number(value):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text) if integral else float(text)
        except ValueError:
            pass
        if integral:
            try:
                return int(float(text))
            except (ValueError, OverflowError):
                pass
    raise InvalidValueTypeError("number", _type_name(value), value)


def coerce_default(storage_type: StorageType | str, value: Any) -> str:
    """
    Convert a column default into a MySQL literal.

    Args:
        storage_type: Declared column type.
        value:        Raw default from the storage definition.

    Returns:
        The literal to place after ``default`` in a column clause.

    Raises:
        InvalidValueTypeError:        Value cannot represent the type.
        DefaultValueUnsupportedError: Type never takes a default (blobs).
        UnsupportedTypeError:         Type is unknown to this backend.

    Examples::

        coerce_default("boolean", "TRUE")   →  "1"
        coerce_default("int", "42")         →  "42"
        coerce_default("string", "it's")    →  "'it\\'s'"
    """
    if value is None:
        return NULL_LITERAL

    try:
        st = StorageType(storage_type)
    except ValueError:
        raise UnsupportedTypeError(storage_type) from None

    if st is StorageType.BOOLEAN:
        if isinstance(value, str):
            truthy = value == "1" or value.lower() == "true"
        else:
            truthy = bool(value)
        return TRUE_LITERAL if truthy else FALSE_LITERAL

    if st is StorageType.STRING:
        return "'" + escape_string(value if isinstance(value, str) else str(value)) + "'"

    if st is StorageType.INT:
        return str(_to_number(value, integral=True))

    if st in (StorageType.FLOAT, StorageType.DECIMAL):
        return str(_to_number(value, integral=False))

    if st is StorageType.DATE:
        if isinstance(value, datetime.date):
            return f"'{date_to_sql(value)}'"
        raise InvalidValueTypeError("datetime", _type_name(value), value)

    if st is StorageType.TIME:
        if isinstance(value, (datetime.time, datetime.datetime)):
            return f"'{time_to_sql(value)}'"
        raise InvalidValueTypeError("datetime", _type_name(value), value)

    if st is StorageType.DATETIME:
        if isinstance(value, datetime.datetime):
            return f"'{date_to_sql(value)} {time_to_sql(value)}'"
        raise InvalidValueTypeError("datetime", _type_name(value), value)

    if st is StorageType.BYTE_ARRAY:
        raise DefaultValueUnsupportedError(st.value)

    raise UnsupportedTypeError(storage_type)
