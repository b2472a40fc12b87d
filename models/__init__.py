"""models/__init__.py"""
from models.definitions import (
    StorageType,
    ColumnDefinition,
    ForeignKeyDefinition,
    IndexDefinition,
    TableDefinition,
    StorageDefinition,
    TableImportEntry,
    ImportDefinition,
    load_definition,
)
from models.validation import (
    validate_storage_definition,
    ensure_valid_storage_definition,
    validate_import_entry,
    validate_import_definition,
)

__all__ = [
    "StorageType",
    "ColumnDefinition",
    "ForeignKeyDefinition",
    "IndexDefinition",
    "TableDefinition",
    "StorageDefinition",
    "TableImportEntry",
    "ImportDefinition",
    "load_definition",
    "validate_storage_definition",
    "ensure_valid_storage_definition",
    "validate_import_entry",
    "validate_import_definition",
]
