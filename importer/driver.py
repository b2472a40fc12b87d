"""
importer/driver.py
------------------
Loads an import definition into storage through one transactional batch.

Design Decisions:
    * ONE batch (one transaction) covers every entry, so nothing is
      committed unless the whole run reaches ``commit()``.
    * Entries are isolated from each other with savepoints: an entry that
      references an unknown table, is malformed, or hits a failing statement
      is rolled back to its savepoint, recorded in the report and skipped.
      The remaining entries still load.
    * Connection loss and commit failure are not entry errors: they abort
      the import and propagate. ``dispose()`` always runs, so an aborted run
      rolls back and releases its connection.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from importer.sources import DataSource, open_source
from logger import get_logger
from models.definitions import ImportDefinition, StorageDefinition, TableImportEntry
from models.validation import validate_import_entry
from storage.base import Batch, StorageAdapter
from storage.errors import ImportEntryError, MalformedEntryError, StatementError, StorageError

log = get_logger(__name__)


@dataclass
class EntryResult:
    """Outcome of one import entry."""
    index: int
    table: str
    rows_inserted: int = 0
    error: StorageError | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    def __str__(self) -> str:
        status = "OK" if self.success else "FAILED"
        text = f"[{status}] #{self.index} {self.table}: {self.rows_inserted} rows"
        if self.error is not None:
            text += f"\n  Error: {self.error}"
        return text


@dataclass
class ImportReport:
    """Outcome of :func:`import_data`."""
    entries: list[EntryResult] = field(default_factory=list)
    committed: bool = False

    @property
    def rows_inserted(self) -> int:
        return sum(e.rows_inserted for e in self.entries)

    @property
    def errors(self) -> list[EntryResult]:
        return [e for e in self.entries if not e.success]

    @property
    def ok(self) -> bool:
        return self.committed and not self.errors

    def summary(self) -> str:
        loaded = len(self.entries) - len(self.errors)
        return (
            f"{self.rows_inserted} row(s) imported from {loaded} of "
            f"{len(self.entries)} entr{'y' if len(self.entries) == 1 else 'ies'}; "
            f"{len(self.errors)} failed; "
            f"{'committed' if self.committed else 'not committed'}."
        )


def _insert_rows(
    batch: Batch,
    entry: TableImportEntry,
    columns: Sequence[str],
    rows,
) -> int:
    count = 0
    for row in rows:
        if not isinstance(row, (list, tuple)):
            raise MalformedEntryError(entry.raw, f"row {count + 1} is not a list: {row!r}")
        try:
            batch.insert(entry.table, columns, row)
        except ValueError as exc:
            raise MalformedEntryError(entry.raw, f"row {count + 1}: {exc}") from exc
        count += 1
    return count


def _import_file(
    batch: Batch,
    entry: TableImportEntry,
    base_dir: Path,
    formats: dict[str, type[DataSource]] | None,
) -> int:
    path = base_dir / str(entry.from_file)
    source = open_source(str(entry.format), path, entry.delimiter, log, formats=formats)
    try:
        columns: Sequence[str] = entry.columns
        if entry.header:
            header = source.read_next()
            if header is None:
                return 0
            if not columns:
                columns = [h.strip() for h in header]
        return _insert_rows(batch, entry, columns, source)
    finally:
        source.dispose()


def _import_entry(
    batch: Batch,
    entry: TableImportEntry,
    base_dir: Path,
    formats: dict[str, type[DataSource]] | None,
) -> int:
    if entry.source_kind == "values":
        return _insert_rows(batch, entry, entry.columns, entry.values or [])
    return _import_file(batch, entry, base_dir, formats)


def import_data(
    storage_definition: StorageDefinition,
    import_definition: ImportDefinition,
    adapter: StorageAdapter,
    *,
    base_dir: Path | str = ".",
    formats: dict[str, type[DataSource]] | None = None,
) -> ImportReport:
    """
    Import every entry of *import_definition* in one transaction.

    Args:
        storage_definition: Target schema; entries must reference its tables.
        import_definition:  Entries to load, processed in order.
        adapter:            Storage adapter that provides the batch.
        base_dir:           Directory ``fromFile`` paths resolve against.
        formats:            Reader registry override (defaults to csv/tsv).

    Returns:
        :class:`ImportReport` with one result per entry.

    Raises:
        ConnectionLostError, StorageError: Catastrophic failures (including a
        failed commit) after the batch has been disposed.
    """
    report = ImportReport()
    base = Path(base_dir)
    batch = adapter.create_batch()
    try:
        batch.open()
        for index, entry in enumerate(import_definition.entries):
            result = EntryResult(index=index, table=entry.table)
            report.entries.append(result)

            error = validate_import_entry(entry, storage_definition)
            if error is not None:
                result.error = error
                log.error("Skipping import entry #%d: %s", index, error)
                continue

            savepoint = f"import_entry_{index}"
            batch.savepoint(savepoint)
            try:
                result.rows_inserted = _import_entry(batch, entry, base, formats)
            except (ImportEntryError, StatementError) as exc:
                batch.rollback_to(savepoint)
                result.rows_inserted = 0
                result.error = exc
                log.error("Import entry #%d into '%s' rolled back: %s", index, entry.table, exc)
                continue
            batch.release(savepoint)
            log.info("Imported %d row(s) into '%s'.", result.rows_inserted, entry.table)

        batch.commit()
        report.committed = True
    finally:
        batch.dispose()

    log.info("Import finished: %s", report.summary())
    return report
