"""
models/definitions.py
---------------------
Typed models for storage definitions (schema) and import definitions
(data to load).

Design Decision:
    Definitions are frozen dataclasses built from parsed JSON through
    explicit ``from_dict`` factories. They are value data: consumed by
    reference by the schema synthesizer and the import driver, never
    mutated. The JSON shape follows the camelCase keys used in definition
    files (``primaryKey``, ``defaultValue``, ``fromFile`` …).
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from storage.errors import ConfigurationError


class StorageType(str, Enum):
    """Closed set of column types every backend must map."""
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    BYTE_ARRAY = "byteArray"
    DATETIME = "datetime"
    DATE = "date"
    TIME = "time"

    @classmethod
    def parse(cls, raw: Any) -> "StorageType | Any":
        """Return the matching member, or *raw* unchanged when unknown."""
        try:
            return cls(raw)
        except ValueError:
            return raw


def _as_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)


# ---------------------------------------------------------------------------
# Storage definition
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ColumnDefinition:
    """
    One table column.

    ``has_default`` distinguishes an explicit ``"defaultValue": null``
    (which renders ``default null``) from a column without a default.
    """
    name: str
    type: StorageType | str
    length: int | None = None
    nullable: bool = True
    default_value: Any = None
    has_default: bool = False
    autoincrement: bool = False

    @staticmethod
    def from_dict(data: dict[str, Any], name: str | None = None) -> "ColumnDefinition":
        return ColumnDefinition(
            name=name if name is not None else data.get("name", ""),
            type=StorageType.parse(data.get("type")),
            length=data.get("length"),
            nullable=bool(data.get("nullable", True)),
            default_value=data.get("defaultValue"),
            has_default="defaultValue" in data,
            autoincrement=bool(data.get("autoincrement", False)),
        )


@dataclass(frozen=True)
class ForeignKeyDefinition:
    column: str
    foreign_table: str
    foreign_field: str
    name: str | None = None

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ForeignKeyDefinition":
        return ForeignKeyDefinition(
            column=data.get("column", ""),
            foreign_table=data.get("foreignTable", ""),
            foreign_field=data.get("foreignField", ""),
            name=data.get("name"),
        )


@dataclass(frozen=True)
class IndexDefinition:
    name: str
    columns: tuple[str, ...]
    unique: bool = False

    @staticmethod
    def from_dict(key: str, data: dict[str, Any]) -> "IndexDefinition":
        return IndexDefinition(
            name=data.get("name") or key,
            columns=_as_tuple(data.get("columns")),
            unique=bool(data.get("unique", False)),
        )


@dataclass(frozen=True)
class TableDefinition:
    """
    A table: ordered columns, a primary key and optional constraints.

    ``columns`` in JSON may be a list of column objects carrying ``name``,
    or an object keyed by column name. Order is preserved either way.
    """
    name: str
    columns: tuple[ColumnDefinition, ...]
    primary_key: tuple[str, ...] = ()
    foreign_keys: tuple[ForeignKeyDefinition, ...] = ()
    indexes: dict[str, IndexDefinition] = field(default_factory=dict)

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def column(self, name: str) -> ColumnDefinition | None:
        return next((c for c in self.columns if c.name == name), None)

    @staticmethod
    def from_dict(name: str, data: dict[str, Any]) -> "TableDefinition":
        raw_columns = data.get("columns") or []
        if isinstance(raw_columns, dict):
            columns = tuple(
                ColumnDefinition.from_dict(col, name=col_name)
                for col_name, col in raw_columns.items()
            )
        else:
            columns = tuple(ColumnDefinition.from_dict(col) for col in raw_columns)

        return TableDefinition(
            name=name,
            columns=columns,
            primary_key=_as_tuple(data.get("primaryKey")),
            foreign_keys=tuple(
                ForeignKeyDefinition.from_dict(fk) for fk in data.get("foreignKeys") or []
            ),
            indexes={
                key: IndexDefinition.from_dict(key, idx)
                for key, idx in (data.get("indexes") or {}).items()
            },
        )


@dataclass(frozen=True)
class StorageDefinition:
    """Schema of a whole storage: tables keyed (and ordered) by name."""
    tables: dict[str, TableDefinition] = field(default_factory=dict)
    options: dict[str, Any] = field(default_factory=dict)

    def has_table(self, name: str) -> bool:
        return name in self.tables

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "StorageDefinition":
        if not isinstance(data, dict):
            raise ConfigurationError("Storage definition must be a JSON object.")
        return StorageDefinition(
            tables={
                name: TableDefinition.from_dict(name, table)
                for name, table in (data.get("tables") or {}).items()
            },
            options=dict(data.get("options") or {}),
        )


# ---------------------------------------------------------------------------
# Import definition
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TableImportEntry:
    """
    Data to load into one table: literal ``values`` or an external file.

    Attributes:
        table:     Target table name.
        columns:   Column names for positional rows.
        values:    Literal rows (list of lists).
        from_file: Path to a data file (relative to the import base dir).
        format:    Data file format, e.g. ``"csv"``.
        delimiter: Field delimiter override for the reader.
        header:    First file row holds column names (used when ``columns``
                   is empty).
        raw:       The entry exactly as read, for error reports.
    """
    table: str
    columns: tuple[str, ...] = ()
    values: list[list[Any]] | None = None
    from_file: str | None = None
    format: str | None = None
    delimiter: str | None = None
    header: bool = False
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def source_kind(self) -> str | None:
        """``"values"``, ``"file"`` or ``None`` when the entry is malformed."""
        has_values = self.values is not None
        has_file = self.from_file is not None and self.format is not None
        if has_values and not has_file:
            return "values"
        if has_file and not has_values:
            return "file"
        return None

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "TableImportEntry":
        if not isinstance(data, dict):
            data = {"table": None, "invalid": data}
        return TableImportEntry(
            table=data.get("table") or "",
            columns=_as_tuple(data.get("columns")),
            values=data.get("values"),
            from_file=data.get("fromFile"),
            format=data.get("format"),
            delimiter=data.get("delimiter"),
            header=bool(data.get("header", False)),
            raw=data,
        )


@dataclass(frozen=True)
class ImportDefinition:
    entries: tuple[TableImportEntry, ...] = ()

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ImportDefinition":
        if not isinstance(data, dict):
            raise ConfigurationError("Import definition must be a JSON object.")
        return ImportDefinition(
            entries=tuple(TableImportEntry.from_dict(e) for e in data.get("import") or [])
        )


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_definition(value: Any, base_dir: Path | str = ".") -> dict[str, Any]:
    """
    Resolve a definition given inline or as a path to a JSON file.

    Args:
        value:    A dict (inline definition) or a path string.
        base_dir: Directory relative paths resolve against.

    Raises:
        ConfigurationError: If the file cannot be read or is not valid JSON.
    """
    if not isinstance(value, str):
        if not isinstance(value, dict):
            raise ConfigurationError(f"Definition must be an object or a file path, got {value!r}.")
        return value

    path = Path(base_dir) / value
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"Cannot read definition file '{path}': {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid JSON in definition file '{path}': {exc}") from exc
