"""
tests/test_sources.py
---------------------
Unit tests for importer/sources.py.
"""
from __future__ import annotations

import logging

import pytest

from importer.sources import CsvSource, SOURCE_FORMATS, TsvSource, open_source
from storage.errors import DataSourceError


class TestCsvSource:
    def test_reads_rows_then_none(self, tmp_path) -> None:
        path = tmp_path / "data.csv"
        path.write_text('1,Alice\n2,"Bob, Jr."\n', encoding="utf-8")

        source = CsvSource(path)
        assert source.read_next() == ["1", "Alice"]
        assert source.read_next() == ["2", "Bob, Jr."]
        assert source.read_next() is None
        assert source.read_next() is None
        assert source.rows_read == 2

    def test_skips_blank_lines(self, tmp_path) -> None:
        path = tmp_path / "data.csv"
        path.write_text("a\n\n\nb\n", encoding="utf-8")
        assert list(CsvSource(path)) == [["a"], ["b"]]

    def test_custom_delimiter(self, tmp_path) -> None:
        path = tmp_path / "data.csv"
        path.write_text("1|Alice\n", encoding="utf-8")
        assert list(CsvSource(path, delimiter="|")) == [["1", "Alice"]]

    def test_file_opened_lazily(self, tmp_path) -> None:
        source = CsvSource(tmp_path / "missing.csv")
        with pytest.raises(DataSourceError, match="Cannot open data file"):
            source.read_next()

    def test_dispose_twice(self, tmp_path) -> None:
        path = tmp_path / "data.csv"
        path.write_text("1\n2\n", encoding="utf-8")
        source = CsvSource(path)
        source.read_next()
        source.dispose()
        source.dispose()
        assert source.read_next() is None

    def test_context_manager_closes(self, tmp_path) -> None:
        path = tmp_path / "data.csv"
        path.write_text("1\n2\n", encoding="utf-8")
        with CsvSource(path) as source:
            assert source.read_next() == ["1"]
        assert source.read_next() is None

    def test_uses_given_logger(self, tmp_path, caplog) -> None:
        path = tmp_path / "data.csv"
        path.write_text("1\n", encoding="utf-8")
        logger = logging.getLogger("dbimport.test_sources")
        with caplog.at_level(logging.DEBUG, logger="dbimport.test_sources"):
            list(CsvSource(path, logger=logger))
        assert any("Opened data file" in r.getMessage() for r in caplog.records)


class TestTsvSource:
    def test_tab_is_default(self, tmp_path) -> None:
        path = tmp_path / "data.tsv"
        path.write_text("1\tAlice, Smith\n", encoding="utf-8")
        assert list(TsvSource(path)) == [["1", "Alice, Smith"]]


class TestOpenSource:
    def test_known_formats(self) -> None:
        assert set(SOURCE_FORMATS) == {"csv", "tsv"}

    def test_case_insensitive(self, tmp_path) -> None:
        assert isinstance(open_source("CSV", tmp_path / "x.csv"), CsvSource)

    def test_unknown_format(self, tmp_path) -> None:
        with pytest.raises(DataSourceError, match="Unsupported data format 'xlsx'"):
            open_source("xlsx", tmp_path / "x.xlsx")

    def test_delimiter_passed_through(self, tmp_path) -> None:
        source = open_source("tsv", tmp_path / "x.tsv", delimiter=";")
        assert source.delimiter == ";"
