"""
models/validation.py
--------------------
Shape checks for storage definitions and import entries.

Design Decision:
    Validation is backend-neutral: it checks structure (keys reference
    existing columns, sized types carry a length …) and collects every
    problem instead of stopping at the first one. Type-specific default
    value coercion belongs to the backend type system and happens during
    DDL synthesis.
"""
from __future__ import annotations

from models.definitions import (
    ImportDefinition,
    StorageDefinition,
    StorageType,
    TableDefinition,
    TableImportEntry,
)
from storage.errors import (
    ImportEntryError,
    MalformedEntryError,
    StorageDefinitionError,
    TableNotFoundError,
)

# Types whose native column needs an explicit length.
SIZED_TYPES = frozenset({StorageType.STRING})
# Types that may carry ``autoincrement``.
INTEGER_TYPES = frozenset({StorageType.INT})


def _validate_table(table: TableDefinition, definition: StorageDefinition) -> list[str]:
    problems: list[str] = []
    prefix = f"table '{table.name}'"

    if not table.columns:
        problems.append(f"{prefix}: no columns defined")

    seen: set[str] = set()
    for col in table.columns:
        where = f"{prefix}, column '{col.name}'"
        if not col.name:
            problems.append(f"{prefix}: column without a name")
        elif col.name in seen:
            problems.append(f"{where}: duplicate column name")
        seen.add(col.name)

        if not isinstance(col.type, StorageType):
            problems.append(f"{where}: unknown type {col.type!r}")
            continue
        if col.type in SIZED_TYPES and not (isinstance(col.length, int) and col.length > 0):
            problems.append(f"{where}: type '{col.type.value}' requires a positive length")
        if col.autoincrement and col.type not in INTEGER_TYPES:
            problems.append(f"{where}: autoincrement requires an integer type")

    if not table.primary_key:
        problems.append(f"{prefix}: no primary key")
    for key_col in table.primary_key:
        if key_col not in seen:
            problems.append(f"{prefix}: primary key column '{key_col}' does not exist")

    for fk in table.foreign_keys:
        if fk.column not in seen:
            problems.append(f"{prefix}: foreign key column '{fk.column}' does not exist")
        foreign = definition.tables.get(fk.foreign_table)
        if foreign is not None and foreign.column(fk.foreign_field) is None:
            problems.append(
                f"{prefix}: foreign key references missing column "
                f"'{fk.foreign_table}.{fk.foreign_field}'"
            )

    for index in table.indexes.values():
        if not index.columns:
            problems.append(f"{prefix}, index '{index.name}': no columns")
        for idx_col in index.columns:
            if idx_col not in seen:
                problems.append(
                    f"{prefix}, index '{index.name}': column '{idx_col}' does not exist"
                )

    return problems


def validate_storage_definition(definition: StorageDefinition) -> list[str]:
    """Return every structural problem found in *definition* (empty if valid)."""
    if not definition.tables:
        return ["storage definition contains no tables"]
    problems: list[str] = []
    for table in definition.tables.values():
        problems.extend(_validate_table(table, definition))
    return problems


def ensure_valid_storage_definition(definition: StorageDefinition) -> None:
    """
    Raise if *definition* has structural problems.

    Raises:
        StorageDefinitionError: Carrying the full list of problems.
    """
    problems = validate_storage_definition(definition)
    if problems:
        raise StorageDefinitionError(problems)


def validate_import_entry(
    entry: TableImportEntry, definition: StorageDefinition
) -> ImportEntryError | None:
    """
    Check one import entry against the storage definition.

    Returns the error describing why the entry must be skipped, or None.
    """
    table = definition.tables.get(entry.table)
    if table is None:
        return TableNotFoundError(entry.table)

    kind = entry.source_kind
    if kind is None:
        return MalformedEntryError(
            entry.raw, "exactly one of 'values' or 'fromFile' + 'format' is required"
        )
    if kind == "values" and not isinstance(entry.values, (list, tuple)):
        return MalformedEntryError(entry.raw, "'values' must be a list of rows")
    if kind == "values" and not entry.columns:
        return MalformedEntryError(entry.raw, "'columns' is required with 'values'")
    if kind == "file" and not entry.columns and not entry.header:
        return MalformedEntryError(entry.raw, "'columns' or 'header' is required with 'fromFile'")

    unknown = [c for c in entry.columns if table.column(c) is None]
    if unknown:
        return MalformedEntryError(
            entry.raw, f"unknown column(s) in '{entry.table}': {', '.join(unknown)}"
        )
    return None


def validate_import_definition(
    import_definition: ImportDefinition, definition: StorageDefinition
) -> list[ImportEntryError | None]:
    """Validate every entry; the result is aligned with ``entries``."""
    return [validate_import_entry(e, definition) for e in import_definition.entries]
