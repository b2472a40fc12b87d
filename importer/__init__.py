"""importer/__init__.py"""
from importer.driver import EntryResult, ImportReport, import_data
from importer.sources import CsvSource, DataSource, SOURCE_FORMATS, TsvSource, open_source

__all__ = [
    "EntryResult",
    "ImportReport",
    "import_data",
    "CsvSource",
    "DataSource",
    "SOURCE_FORMATS",
    "TsvSource",
    "open_source",
]
