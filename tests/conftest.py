"""
tests/conftest.py
-----------------
Shared fixtures: a mocked MySQL connection and an in-memory storage adapter
used to exercise the import driver without a server.
"""
from __future__ import annotations

import copy
from typing import Any
from unittest.mock import MagicMock

import pytest

from models.definitions import StorageDefinition
from models.validation import ensure_valid_storage_definition
from storage.base import Batch, BatchState, StorageAdapter, normalize_fields
from storage.errors import BatchNotOpenError, ConnectionLostError, StatementError


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------

class InMemoryBatch(Batch):
    def __init__(self, adapter: "InMemoryAdapter") -> None:
        super().__init__()
        self._adapter = adapter
        self._pending: dict[str, list[dict[str, Any]]] | None = None
        self._savepoints: dict[str, dict[str, list[dict[str, Any]]]] = {}

    def open(self) -> None:
        if self.state is BatchState.OPEN:
            return
        if self.state.is_terminal:
            raise BatchNotOpenError("open", self.state.value)
        self._adapter.connections_opened += 1
        self._pending = copy.deepcopy(self._adapter.tables)
        self.state = BatchState.OPEN

    def insert(self, table, columns, values=None) -> int:
        cols, vals = normalize_fields(columns, values)
        self._require_open("insert")
        if table in self._adapter.failing_tables:
            raise StatementError(f"insert into {table} rejected")
        self._pending.setdefault(table, []).append(dict(zip(cols, vals)))
        return 1

    def update(self, table, columns, values=None, where=None) -> int:
        cols, vals = normalize_fields(columns, values)
        self._require_open("update")
        count = 0
        for row in self._pending.get(table, []):
            if all(row.get(k) == v for k, v in (where or {}).items()):
                row.update(zip(cols, vals))
                count += 1
        return count

    def delete(self, table, key) -> int:
        self._require_open("delete")
        rows = self._pending.get(table, [])
        kept = [r for r in rows if not all(r.get(k) == v for k, v in key.items())]
        self._pending[table] = kept
        return len(rows) - len(kept)

    def savepoint(self, name: str) -> None:
        self._require_open("savepoint")
        self._savepoints[name] = copy.deepcopy(self._pending)

    def rollback_to(self, name: str) -> None:
        self._require_open("rollback")
        self._pending = copy.deepcopy(self._savepoints[name])

    def release(self, name: str) -> None:
        self._require_open("release")
        self._savepoints.pop(name, None)

    def commit(self) -> None:
        self._require_open("commit")
        if self._adapter.fail_commit:
            raise ConnectionLostError("connection lost during commit")
        self._adapter.tables = self._pending
        self._pending = None
        self.state = BatchState.COMMITTED
        self._adapter.release_batch(self)

    def dispose(self) -> None:
        self._pending = None
        if self.state is not BatchState.COMMITTED:
            self.state = BatchState.DISPOSED
        self._adapter.release_batch(self)


class InMemoryAdapter(StorageAdapter):
    def __init__(self) -> None:
        super().__init__()
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.failing_tables: set[str] = set()
        self.fail_commit = False
        self.connections_opened = 0
        self.created: list[InMemoryBatch] = []

    def create_storage(self, storage_definition: StorageDefinition, drop_existing: bool = False) -> int:
        ensure_valid_storage_definition(storage_definition)
        self.tables = {name: [] for name in storage_definition.tables}
        return len(self.tables)

    def create_batch(self) -> InMemoryBatch:
        batch = InMemoryBatch(self)
        self._batches.add(batch)
        self.created.append(batch)
        return batch


@pytest.fixture
def memory_adapter() -> InMemoryAdapter:
    return InMemoryAdapter()


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------

@pytest.fixture
def users_definition_dict() -> dict[str, Any]:
    return {
        "tables": {
            "users": {
                "columns": [
                    {"name": "id", "type": "int", "nullable": False, "autoincrement": True},
                    {"name": "name", "type": "string", "length": 50, "nullable": False},
                ],
                "primaryKey": "id",
            },
            "orders": {
                "columns": [
                    {"name": "id", "type": "int", "nullable": False},
                    {"name": "user_id", "type": "int", "nullable": False},
                    {"name": "total", "type": "decimal", "defaultValue": "0"},
                ],
                "primaryKey": ["id"],
                "foreignKeys": [
                    {"column": "user_id", "foreignTable": "users", "foreignField": "id"}
                ],
            },
        }
    }


@pytest.fixture
def users_definition(users_definition_dict) -> StorageDefinition:
    return StorageDefinition.from_dict(users_definition_dict)


# ---------------------------------------------------------------------------
# Mocked MySQL
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_cursor() -> MagicMock:
    cursor = MagicMock()
    cursor.rowcount = 1
    cursor.fetchone.return_value = (0,)
    return cursor


@pytest.fixture
def mock_connection(mock_cursor) -> MagicMock:
    conn = MagicMock()
    conn.cursor.return_value = mock_cursor
    return conn
