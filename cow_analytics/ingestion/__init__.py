"""
Data Ingestion Module

The orchestrator lives in ``cow_analytics.ingestion.pipeline`` and is not
re-exported here, since it depends on the transformation layer which itself
imports from this package.
"""
from .cache import SnapshotCache
from .csv_parser import ensure_tabular, iter_rows, parse_line
from .diagnostics import IngestionDiagnostics
from .fetcher import FileSource, HttpSource, source_from_settings
from .schema import LEGACY_SCHEMA, ColumnMap, ColumnSchema, FieldRule

__all__ = [
    "SnapshotCache",
    "ensure_tabular",
    "iter_rows",
    "parse_line",
    "IngestionDiagnostics",
    "FileSource",
    "HttpSource",
    "source_from_settings",
    "LEGACY_SCHEMA",
    "ColumnMap",
    "ColumnSchema",
    "FieldRule",
]
