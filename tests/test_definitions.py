"""
tests/test_definitions.py
-------------------------
Unit tests for models/definitions.py and models/validation.py.
"""
from __future__ import annotations

import json

import pytest

from models.definitions import (
    ImportDefinition,
    StorageDefinition,
    StorageType,
    TableImportEntry,
    load_definition,
)
from models.validation import (
    ensure_valid_storage_definition,
    validate_import_definition,
    validate_import_entry,
    validate_storage_definition,
)
from storage.errors import (
    ConfigurationError,
    MalformedEntryError,
    StorageDefinitionError,
    TableNotFoundError,
)


def _table(columns, primary_key="id", **extra) -> dict:
    return {"tables": {"t": {"columns": columns, "primaryKey": primary_key, **extra}}}


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class TestStorageDefinitionParsing:
    def test_list_columns(self, users_definition) -> None:
        users = users_definition.tables["users"]
        assert users.column_names == ["id", "name"]
        assert users.primary_key == ("id",)
        assert users.column("name").length == 50
        assert users.column("name").nullable is False
        assert users.column("id").autoincrement is True

    def test_table_order_preserved(self, users_definition) -> None:
        assert list(users_definition.tables) == ["users", "orders"]

    def test_dict_columns(self) -> None:
        definition = StorageDefinition.from_dict({
            "tables": {
                "t": {
                    "columns": {"id": {"type": "int"}, "label": {"type": "string", "length": 9}},
                    "primaryKey": "id",
                }
            }
        })
        assert definition.tables["t"].column_names == ["id", "label"]

    def test_default_presence(self, users_definition) -> None:
        orders = users_definition.tables["orders"]
        assert orders.column("total").has_default is True
        assert orders.column("total").default_value == "0"
        assert orders.column("id").has_default is False

    def test_explicit_null_default(self) -> None:
        definition = StorageDefinition.from_dict(
            _table([{"name": "id", "type": "int", "defaultValue": None}])
        )
        column = definition.tables["t"].column("id")
        assert column.has_default is True
        assert column.default_value is None

    def test_unknown_type_kept_raw(self) -> None:
        definition = StorageDefinition.from_dict(_table([{"name": "id", "type": "uuid"}]))
        assert definition.tables["t"].column("id").type == "uuid"

    def test_known_type_parsed(self) -> None:
        definition = StorageDefinition.from_dict(_table([{"name": "id", "type": "byteArray"}]))
        assert definition.tables["t"].column("id").type is StorageType.BYTE_ARRAY

    def test_foreign_keys_and_indexes(self, users_definition) -> None:
        orders = users_definition.tables["orders"]
        assert orders.foreign_keys[0].foreign_table == "users"
        assert orders.foreign_keys[0].foreign_field == "id"

        definition = StorageDefinition.from_dict(_table(
            [{"name": "id", "type": "int"}],
            indexes={"ix_id": {"columns": ["id"], "unique": True}},
        ))
        index = definition.tables["t"].indexes["ix_id"]
        assert index.name == "ix_id"
        assert index.columns == ("id",)
        assert index.unique

    def test_not_an_object(self) -> None:
        with pytest.raises(ConfigurationError):
            StorageDefinition.from_dict([])


class TestImportDefinitionParsing:
    def test_entries(self) -> None:
        definition = ImportDefinition.from_dict({
            "import": [
                {"table": "users", "columns": ["id"], "values": [[1]]},
                {"table": "users", "fromFile": "u.csv", "format": "csv", "header": True},
            ]
        })
        values, file_entry = definition.entries
        assert values.source_kind == "values"
        assert file_entry.source_kind == "file"
        assert file_entry.header

    def test_ambiguous_source(self) -> None:
        entry = TableImportEntry.from_dict(
            {"table": "t", "values": [], "fromFile": "x.csv", "format": "csv"}
        )
        assert entry.source_kind is None

    def test_file_without_format(self) -> None:
        assert TableImportEntry.from_dict({"table": "t", "fromFile": "x.csv"}).source_kind is None


class TestLoadDefinition:
    def test_inline(self) -> None:
        data = {"tables": {}}
        assert load_definition(data) is data

    def test_relative_path(self, tmp_path) -> None:
        (tmp_path / "def.json").write_text(json.dumps({"import": []}), encoding="utf-8")
        assert load_definition("def.json", tmp_path) == {"import": []}

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="Cannot read"):
            load_definition("nope.json", tmp_path)

    def test_bad_json(self, tmp_path) -> None:
        (tmp_path / "bad.json").write_text("{", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            load_definition("bad.json", tmp_path)

    def test_wrong_type(self) -> None:
        with pytest.raises(ConfigurationError):
            load_definition(42)


# ---------------------------------------------------------------------------
# Storage validation
# ---------------------------------------------------------------------------

class TestValidateStorageDefinition:
    def test_valid(self, users_definition) -> None:
        assert validate_storage_definition(users_definition) == []
        ensure_valid_storage_definition(users_definition)

    def test_no_tables(self) -> None:
        assert validate_storage_definition(StorageDefinition()) == [
            "storage definition contains no tables"
        ]

    def test_string_needs_length(self) -> None:
        problems = validate_storage_definition(StorageDefinition.from_dict(
            _table([{"name": "id", "type": "int"}, {"name": "s", "type": "string"}])
        ))
        assert any("requires a positive length" in p for p in problems)

    def test_autoincrement_on_string(self) -> None:
        problems = validate_storage_definition(StorageDefinition.from_dict(
            _table([{"name": "id", "type": "string", "length": 5, "autoincrement": True}])
        ))
        assert any("autoincrement" in p for p in problems)

    def test_unknown_type(self) -> None:
        problems = validate_storage_definition(
            StorageDefinition.from_dict(_table([{"name": "id", "type": "uuid"}]))
        )
        assert any("unknown type 'uuid'" in p for p in problems)

    def test_missing_primary_key(self) -> None:
        problems = validate_storage_definition(StorageDefinition.from_dict(
            _table([{"name": "id", "type": "int"}], primary_key=None)
        ))
        assert any("no primary key" in p for p in problems)

    def test_primary_key_column_missing(self) -> None:
        problems = validate_storage_definition(StorageDefinition.from_dict(
            _table([{"name": "id", "type": "int"}], primary_key="code")
        ))
        assert any("'code' does not exist" in p for p in problems)

    def test_duplicate_column(self) -> None:
        problems = validate_storage_definition(StorageDefinition.from_dict(
            _table([{"name": "id", "type": "int"}, {"name": "id", "type": "int"}])
        ))
        assert any("duplicate column name" in p for p in problems)

    def test_foreign_field_missing(self, users_definition_dict) -> None:
        users_definition_dict["tables"]["orders"]["foreignKeys"][0]["foreignField"] = "uid"
        problems = validate_storage_definition(StorageDefinition.from_dict(users_definition_dict))
        assert any("users.uid" in p for p in problems)

    def test_index_column_missing(self) -> None:
        problems = validate_storage_definition(StorageDefinition.from_dict(
            _table([{"name": "id", "type": "int"}], indexes={"ix": {"columns": ["nope"]}})
        ))
        assert any("index 'ix'" in p for p in problems)

    def test_ensure_collects_all_problems(self) -> None:
        definition = StorageDefinition.from_dict(
            _table([{"name": "s", "type": "string"}], primary_key="id")
        )
        with pytest.raises(StorageDefinitionError) as info:
            ensure_valid_storage_definition(definition)
        assert len(info.value.problems) == 2


# ---------------------------------------------------------------------------
# Import validation
# ---------------------------------------------------------------------------

class TestValidateImportEntry:
    def _entry(self, **data) -> TableImportEntry:
        return TableImportEntry.from_dict(data)

    def test_valid_values(self, users_definition) -> None:
        entry = self._entry(table="users", columns=["id", "name"], values=[[1, "A"]])
        assert validate_import_entry(entry, users_definition) is None

    def test_unknown_table(self, users_definition) -> None:
        error = validate_import_entry(self._entry(table="ghosts", values=[]), users_definition)
        assert isinstance(error, TableNotFoundError)

    def test_values_without_columns(self, users_definition) -> None:
        error = validate_import_entry(self._entry(table="users", values=[[1]]), users_definition)
        assert isinstance(error, MalformedEntryError)

    def test_values_not_a_list(self, users_definition) -> None:
        error = validate_import_entry(
            self._entry(table="users", columns=["id"], values="1,2"), users_definition
        )
        assert isinstance(error, MalformedEntryError)
        assert "list of rows" in error.reason

    def test_no_source(self, users_definition) -> None:
        error = validate_import_entry(self._entry(table="users", columns=["id"]), users_definition)
        assert isinstance(error, MalformedEntryError)

    def test_file_needs_columns_or_header(self, users_definition) -> None:
        error = validate_import_entry(
            self._entry(table="users", fromFile="u.csv", format="csv"), users_definition
        )
        assert isinstance(error, MalformedEntryError)

    def test_unknown_column(self, users_definition) -> None:
        error = validate_import_entry(
            self._entry(table="users", columns=["id", "email"], values=[[1, "a@b"]]),
            users_definition,
        )
        assert isinstance(error, MalformedEntryError)
        assert "email" in error.reason

    def test_definition_results_aligned(self, users_definition) -> None:
        definition = ImportDefinition.from_dict({
            "import": [
                {"table": "users", "columns": ["id"], "values": [[1]]},
                {"table": "ghosts", "columns": ["id"], "values": [[1]]},
            ]
        })
        results = validate_import_definition(definition, users_definition)
        assert results[0] is None
        assert isinstance(results[1], TableNotFoundError)
