"""
storage/errors.py
-----------------
Error taxonomy shared by storage adapters, the schema synthesizer and the
import driver.

Every error carries a :class:`ErrorKind` tag plus the structured fields
needed to report it, so callers can branch on ``exc.kind`` without parsing
messages.
"""
from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    INVALID_DEFINITION = "invalid_definition"
    INVALID_VALUE_TYPE = "invalid_value_type"
    UNSUPPORTED_TYPE = "unsupported_type"
    DEFAULT_VALUE_UNSUPPORTED = "default_value_unsupported"
    BATCH_NOT_OPEN = "batch_not_open"
    TABLE_NOT_FOUND = "table_not_found"
    MALFORMED_ENTRY = "malformed_entry"
    DATA_SOURCE = "data_source"
    STATEMENT = "statement"
    CONNECTION_LOST = "connection_lost"
    STORAGE = "storage"


class StorageError(Exception):
    """Base class for all errors reported by this package."""
    kind: ErrorKind = ErrorKind.STORAGE


class ConfigurationError(StorageError):
    """Connection settings or provider configuration are unusable."""
    kind = ErrorKind.CONFIGURATION


class StorageDefinitionError(StorageError):
    """A storage definition failed validation."""
    kind = ErrorKind.INVALID_DEFINITION

    def __init__(self, problems: list[str]) -> None:
        self.problems = list(problems)
        super().__init__(
            "Invalid storage definition:\n  " + "\n  ".join(self.problems)
        )


# ---------------------------------------------------------------------------
# Type coercion
# ---------------------------------------------------------------------------

class TypeCoercionError(StorageError):
    """Base for errors raised while mapping types or coercing defaults."""


class InvalidValueTypeError(TypeCoercionError):
    kind = ErrorKind.INVALID_VALUE_TYPE

    def __init__(self, expected: str, actual: str, value: Any) -> None:
        self.expected = expected
        self.actual = actual
        self.value = value
        super().__init__(
            f"Invalid value type (actual: {actual}, expected: {expected}): {value!r}"
        )


class UnsupportedTypeError(TypeCoercionError):
    kind = ErrorKind.UNSUPPORTED_TYPE

    def __init__(self, type_: Any) -> None:
        self.type = type_
        super().__init__(
            f"Column type {type_!r} is not recognised or not supported by the current provider."
        )


class DefaultValueUnsupportedError(TypeCoercionError):
    kind = ErrorKind.DEFAULT_VALUE_UNSUPPORTED

    def __init__(self, type_: Any) -> None:
        self.type = type_
        super().__init__(
            f"Default values are not supported by the storage for {type_!r} columns."
        )


# ---------------------------------------------------------------------------
# Batches
# ---------------------------------------------------------------------------

class BatchNotOpenError(StorageError):
    """An operation was attempted on a batch without an active transaction."""
    kind = ErrorKind.BATCH_NOT_OPEN

    def __init__(self, operation: str, state: str) -> None:
        self.operation = operation
        self.state = state
        super().__init__(f"Cannot {operation}: batch is not open (state: {state}).")


class StatementError(StorageError):
    """A single statement failed; the transaction itself is still usable."""
    kind = ErrorKind.STATEMENT

    def __init__(self, message: str, sql: str | None = None) -> None:
        self.sql = sql
        super().__init__(message)


class ConnectionLostError(StorageError):
    """The connection to the backend failed or was lost."""
    kind = ErrorKind.CONNECTION_LOST


# ---------------------------------------------------------------------------
# Import entries
# ---------------------------------------------------------------------------

class ImportEntryError(StorageError):
    """Base for per-entry import errors; never fatal to the whole import."""


class TableNotFoundError(ImportEntryError):
    kind = ErrorKind.TABLE_NOT_FOUND

    def __init__(self, table: str) -> None:
        self.table = table
        super().__init__(
            f"Failed to import data into table '{table}'. "
            "No table with specified name is present in storage definition."
        )


class MalformedEntryError(ImportEntryError):
    kind = ErrorKind.MALFORMED_ENTRY

    def __init__(self, entry: Any, reason: str) -> None:
        self.entry = entry
        self.reason = reason
        super().__init__(f"Invalid format of import entry ({reason}): {entry!r}")


class DataSourceError(ImportEntryError):
    """A data-source reader could not be resolved, opened or read."""
    kind = ErrorKind.DATA_SOURCE
