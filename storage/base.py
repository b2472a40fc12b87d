"""
storage/base.py
---------------
Backend-neutral contracts: :class:`StorageAdapter`, :class:`Batch` and the
registry an adapter keeps of the batches it created.

Design Decisions:
    * Adapters and batches are abstract base classes with one concrete
      implementation per backend (``storage/mysql_adapter.py`` today).
    * The batch lifecycle is an explicit state machine::

          CREATED → OPEN → COMMITTED
          CREATED | OPEN → DISPOSED

      ``dispose()`` is the cleanup primitive for every non-success path and
      must never raise.
    * ``insert``/``update`` accept either parallel ``columns``/``values``
      sequences or a single ``{column: value}`` mapping; both normalise to
      the same pair of lists before reaching the backend.
"""
from __future__ import annotations

import itertools
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any, Iterator

from storage.errors import BatchNotOpenError


class BatchState(str, Enum):
    CREATED = "created"
    OPEN = "open"
    COMMITTED = "committed"
    DISPOSED = "disposed"

    @property
    def is_terminal(self) -> bool:
        return self in (BatchState.COMMITTED, BatchState.DISPOSED)


def normalize_fields(
    columns: Sequence[str] | Mapping[str, Any],
    values: Sequence[Any] | None = None,
) -> tuple[list[str], list[Any]]:
    """
    Turn either call form into parallel ``columns``/``values`` lists.

    Raises:
        ValueError: If the lists differ in length or are empty.
    """
    if isinstance(columns, Mapping):
        if values is not None:
            raise ValueError("values must be omitted when a field mapping is given")
        cols = [str(c) for c in columns.keys()]
        vals = list(columns.values())
    else:
        cols = [str(c) for c in columns]
        vals = list(values) if values is not None else []

    if not cols:
        raise ValueError("at least one column is required")
    if len(cols) != len(vals):
        raise ValueError(
            f"column/value count mismatch: {len(cols)} column(s), {len(vals)} value(s)"
        )
    return cols, vals


class Batch(ABC):
    """
    One transactional unit of work against a storage backend.

    Usage::

        batch = adapter.create_batch()
        try:
            batch.open()
            batch.insert("users", ["id", "name"], [1, "Alice"])
            batch.commit()
        finally:
            batch.dispose()

    or as a context manager (opens on enter, disposes on exit)::

        with adapter.create_batch() as batch:
            batch.insert("users", {"id": 1, "name": "Alice"})
            batch.commit()
    """

    def __init__(self) -> None:
        self.state = BatchState.CREATED
        self.handle: int | None = None

    @property
    def is_open(self) -> bool:
        return self.state is BatchState.OPEN

    def _require_open(self, operation: str) -> None:
        if self.state is not BatchState.OPEN:
            raise BatchNotOpenError(operation, self.state.value)

    @abstractmethod
    def open(self) -> None:
        """Acquire a connection and begin a transaction (no-op when open)."""

    @abstractmethod
    def insert(
        self,
        table: str,
        columns: Sequence[str] | Mapping[str, Any],
        values: Sequence[Any] | None = None,
    ) -> int:
        """Insert one row; returns the affected row count."""

    @abstractmethod
    def update(
        self,
        table: str,
        columns: Sequence[str] | Mapping[str, Any],
        values: Sequence[Any] | None = None,
        where: Mapping[str, Any] | None = None,
    ) -> int:
        """Update rows (all, or those matching *where*); returns the row count."""

    @abstractmethod
    def delete(self, table: str, key: Mapping[str, Any]) -> int:
        """Delete the row identified by primary-key values *key*."""

    @abstractmethod
    def savepoint(self, name: str) -> None: ...

    @abstractmethod
    def rollback_to(self, name: str) -> None: ...

    @abstractmethod
    def release(self, name: str) -> None: ...

    @abstractmethod
    def commit(self) -> None:
        """Commit and release the connection; leaves the batch open on failure."""

    @abstractmethod
    def dispose(self) -> None:
        """Roll back if needed, release the connection; never raises."""

    def __enter__(self) -> "Batch":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.dispose()
        return False


class BatchRegistry:
    """
    Batches owned by one adapter, keyed by an integer handle.

    Registering assigns ``batch.handle``; removal by handle is O(1).
    """

    def __init__(self) -> None:
        self._batches: dict[int, Batch] = {}
        self._handles = itertools.count(1)

    def add(self, batch: Batch) -> int:
        handle = next(self._handles)
        batch.handle = handle
        self._batches[handle] = batch
        return handle

    def remove(self, batch: Batch) -> bool:
        if batch.handle is None:
            return False
        return self._batches.pop(batch.handle, None) is not None

    def __contains__(self, batch: object) -> bool:
        return isinstance(batch, Batch) and self._batches.get(batch.handle) is batch  # type: ignore[arg-type]

    def __len__(self) -> int:
        return len(self._batches)

    def __iter__(self) -> Iterator[Batch]:
        # Snapshot: disposing a batch removes it while iterating.
        return iter(list(self._batches.values()))


class StorageAdapter(ABC):
    """
    Backend-specific schema and batch operations behind a uniform interface.
    """

    def __init__(self) -> None:
        self._batches = BatchRegistry()
        self._disposed = False

    @property
    def open_batches(self) -> list[Batch]:
        return list(self._batches)

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @abstractmethod
    def create_storage(self, storage_definition: Any, drop_existing: bool = False) -> int:
        """Create the storage and its tables; returns the number of tables created."""

    @abstractmethod
    def create_batch(self) -> Batch:
        """Return a new, registered, not-yet-opened batch."""

    def release_batch(self, batch: Batch) -> None:
        """Forget *batch*; called by batches when they commit or dispose."""
        self._batches.remove(batch)

    def dispose(self) -> None:
        """Dispose every batch still registered; idempotent."""
        for batch in self._batches:
            batch.dispose()
        self._disposed = True

    def __enter__(self) -> "StorageAdapter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.dispose()
        return False
