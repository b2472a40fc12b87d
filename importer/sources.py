"""
importer/sources.py
-------------------
File-based data sources consumed by the import driver.

Contract:
    * ``read_next()`` returns the next row as a list of raw field strings,
      or ``None`` once the data is exhausted. Rows are produced lazily,
      single pass, not restartable.
    * ``dispose()`` releases the underlying file; safe to call twice.
    * Sources are constructed from ``(filename, delimiter, logger)`` and are
      also iterable and usable as context managers.

Readers are looked up by format name in :data:`SOURCE_FORMATS`.
"""
from __future__ import annotations

import csv
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO, Iterator

from logger import get_logger
from storage.errors import DataSourceError

log = get_logger(__name__)


class DataSource(ABC):
    """Base class for row-oriented data sources."""

    default_delimiter = ","

    def __init__(
        self,
        filename: str | Path,
        delimiter: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.filename = Path(filename)
        self.delimiter = delimiter or self.default_delimiter
        self._logger = logger or log
        self.rows_read = 0

    @abstractmethod
    def read_next(self) -> list[str] | None:
        """Return the next row, or None at end of data."""

    @abstractmethod
    def dispose(self) -> None:
        """Release the underlying resource."""

    def __iter__(self) -> Iterator[list[str]]:
        while True:
            row = self.read_next()
            if row is None:
                return
            yield row

    def __enter__(self) -> "DataSource":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.dispose()
        return False


class CsvSource(DataSource):
    """
    Delimited text file read with :mod:`csv`.

    The file is opened on the first ``read_next()`` call. Blank lines are
    skipped.
    """

    def __init__(
        self,
        filename: str | Path,
        delimiter: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(filename, delimiter, logger)
        self._file: IO[str] | None = None
        self._reader = None
        self._exhausted = False

    def _open(self) -> None:
        try:
            self._file = self.filename.open("r", encoding="utf-8", newline="")
        except OSError as exc:
            raise DataSourceError(f"Cannot open data file '{self.filename}': {exc}") from exc
        self._reader = csv.reader(self._file, delimiter=self.delimiter)
        self._logger.debug("Opened data file '%s' (delimiter %r).", self.filename, self.delimiter)

    def read_next(self) -> list[str] | None:
        if self._exhausted:
            return None
        if self._reader is None:
            self._open()
        try:
            for row in self._reader:
                if not row:
                    continue
                self.rows_read += 1
                return row
        except csv.Error as exc:
            raise DataSourceError(
                f"Malformed data in '{self.filename}' near row {self.rows_read + 1}: {exc}"
            ) from exc
        self.dispose()
        return None

    def dispose(self) -> None:
        self._exhausted = True
        if self._file is not None:
            self._file.close()
            self._file = None
            self._logger.debug("Closed data file '%s' after %d row(s).", self.filename, self.rows_read)


class TsvSource(CsvSource):
    """Tab-separated variant of :class:`CsvSource`."""
    default_delimiter = "\t"


SOURCE_FORMATS: dict[str, type[DataSource]] = {
    "csv": CsvSource,
    "tsv": TsvSource,
}


def open_source(
    format_name: str,
    filename: str | Path,
    delimiter: str | None = None,
    logger: logging.Logger | None = None,
    formats: dict[str, type[DataSource]] | None = None,
) -> DataSource:
    """
    Construct the reader registered for *format_name*.

    Raises:
        DataSourceError: If no reader handles the format.
    """
    registry = formats if formats is not None else SOURCE_FORMATS
    try:
        source_cls = registry[format_name.lower()]
    except KeyError:
        raise DataSourceError(
            f"Unsupported data format '{format_name}'. Available: {', '.join(sorted(registry))}."
        ) from None
    return source_cls(filename, delimiter, logger)
