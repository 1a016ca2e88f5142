"""Store reader interface.

A reader runs one remote read query against a backing store and returns the
matching data points as flat rows. Any store (SQL table, search index, log
store) implementing ``Reader`` can back the read endpoint.
"""

from abc import ABC, abstractmethod
from typing import Any, Mapping, Sequence

from promreader.remote import prompb
from promreader.remote.converter import Row


class Reader(ABC):
    """Abstract store reader.

    Rows may be returned as ``Row`` objects or as mappings with ``value``
    (number), ``timestamp`` (RFC3339 string) and string label fields.
    Implementations must be safe to call from several threads at once.
    """

    @abstractmethod
    def read(self, query: prompb.Query) -> Sequence[Row | Mapping[str, Any]]:
        """Execute a query and return all matching rows.

        Args:
            query: Remote read query (time range and label matchers)

        Returns:
            Sequence of rows, fully materialized
        """

    def close(self) -> None:
        """Release store resources."""
        return None

    def __enter__(self) -> "Reader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
