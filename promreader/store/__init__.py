"""Store readers backing the remote read endpoint."""

from promreader.store.base import Reader
from promreader.store.duckdb_reader import DuckDBReader

__all__ = [
    "Reader",
    "DuckDBReader",
]
