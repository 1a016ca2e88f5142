"""DuckDB store reader.

Serves remote read queries from a single DuckDB table laid out as one row per
sample:

    CREATE TABLE samples (
        "timestamp" TIMESTAMP,   -- UTC
        "value" DOUBLE,
        "__name__" VARCHAR,      -- any number of label columns
        "job" VARCHAR,
        ...
    )

Every column other than ``timestamp`` and ``value`` is a label. Label
matchers follow Prometheus semantics: a NULL or missing label equals the
empty string, and regular expressions are fully anchored RE2 patterns.
"""

import logging
import threading
from typing import Any

import duckdb

from promreader.exceptions import ConfigurationError, QueryLimitExceededError
from promreader.remote import prompb
from promreader.remote.converter import RESERVED_FIELDS, TIMESTAMP_FIELD, VALUE_FIELD, Row
from promreader.store.base import Reader

logger = logging.getLogger(__name__)

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def quote_identifier(name: str) -> str:
    """Quote a SQL identifier for DuckDB."""
    return '"' + name.replace('"', '""') + '"'


def matcher_clause(
    matcher: prompb.LabelMatcher, label_columns: set[str]
) -> tuple[str, list[Any]]:
    """Translate a label matcher into a SQL predicate.

    Args:
        matcher: Remote read label matcher
        label_columns: Label columns present in the table

    Returns:
        tuple: (sql_predicate, parameters)

    Raises:
        ValueError: If the matcher type is unknown
    """
    if matcher.name in label_columns:
        expr = f"coalesce(CAST({quote_identifier(matcher.name)} AS VARCHAR), '')"
    else:
        expr = "''"

    if matcher.type == prompb.LabelMatcher.EQ:
        return f"{expr} = ?", [matcher.value]
    if matcher.type == prompb.LabelMatcher.NEQ:
        return f"{expr} <> ?", [matcher.value]
    if matcher.type == prompb.LabelMatcher.RE:
        return f"regexp_full_match({expr}, ?)", [matcher.value]
    if matcher.type == prompb.LabelMatcher.NRE:
        return f"NOT regexp_full_match({expr}, ?)", [matcher.value]

    raise ValueError(f"Unknown label matcher type: {matcher.type}")


class DuckDBReader(Reader):
    """Reader over a DuckDB samples table.

    Usage:
        reader = DuckDBReader("metrics.duckdb", table="samples")
        rows = reader.read(query)
    """

    def __init__(
        self,
        database: str = ":memory:",
        table: str = "samples",
        connection: duckdb.DuckDBPyConnection | None = None,
        memory_limit: str | None = None,
        threads: int | None = None,
        max_rows: int | None = None,
    ) -> None:
        """
        Initialize reader.

        Args:
            database: DuckDB database path (ignored when connection is given)
            table: Samples table name
            connection: Existing connection to read through
            memory_limit: DuckDB memory limit (e.g., "4GB")
            threads: DuckDB thread count
            max_rows: Reject queries matching more rows than this

        Raises:
            ConfigurationError: If the database cannot be opened or configured
        """
        self.table = table
        self.max_rows = max_rows
        self._owns_connection = connection is None
        self._lock = threading.Lock()

        try:
            self._conn = connection or duckdb.connect(database)
            if memory_limit:
                self._conn.execute(f"SET memory_limit='{memory_limit}'")
            if threads:
                self._conn.execute(f"SET threads={int(threads)}")
        except duckdb.Error as e:
            raise ConfigurationError(
                f"Cannot open DuckDB database {database!r}: {e}", database=database
            ) from e

        logger.debug(f"Initialized DuckDBReader on table {table} ({database})")

    def _cursor(self) -> duckdb.DuckDBPyConnection:
        with self._lock:
            return self._conn.cursor()

    def label_columns(self, cursor: duckdb.DuckDBPyConnection) -> list[str]:
        """List the label columns of the samples table."""
        cursor.execute(f"SELECT * FROM {quote_identifier(self.table)} LIMIT 0")
        return [col[0] for col in cursor.description if col[0] not in RESERVED_FIELDS]

    def build_sql(
        self, query: prompb.Query, label_columns: list[str]
    ) -> tuple[str, list[Any]]:
        """Build the SELECT statement for a query.

        Returns:
            tuple: (sql, parameters)
        """
        ts_column = f"CAST({quote_identifier(TIMESTAMP_FIELD)} AS TIMESTAMP)"

        select = [
            f"strftime({ts_column}, '{_TIMESTAMP_FORMAT}') AS {quote_identifier(TIMESTAMP_FIELD)}",
            f"CAST({quote_identifier(VALUE_FIELD)} AS DOUBLE) AS {quote_identifier(VALUE_FIELD)}",
        ]
        select.extend(
            f"CAST({quote_identifier(col)} AS VARCHAR) AS {quote_identifier(col)}"
            for col in label_columns
        )

        where = [
            f"{quote_identifier(VALUE_FIELD)} IS NOT NULL",
            f"epoch_ms({ts_column}) BETWEEN ? AND ?",
        ]
        params: list[Any] = [query.start_timestamp_ms, query.end_timestamp_ms]

        columns = set(label_columns)
        for matcher in query.matchers:
            clause, clause_params = matcher_clause(matcher, columns)
            where.append(clause)
            params.extend(clause_params)

        sql = (
            f"SELECT {', '.join(select)} "
            f"FROM {quote_identifier(self.table)} "
            f"WHERE {' AND '.join(where)} "
            "ORDER BY 1"
        )
        if self.max_rows is not None:
            sql += f" LIMIT {self.max_rows + 1}"

        return sql, params

    def read(self, query: prompb.Query) -> list[Row]:
        """Execute a remote read query against the samples table.

        Raises:
            QueryLimitExceededError: If more than max_rows rows match
            duckdb.Error: If the table is missing or the query fails
        """
        cursor = self._cursor()
        try:
            label_columns = self.label_columns(cursor)
            sql, params = self.build_sql(query, label_columns)

            logger.debug(f"Executing remote read query: {sql}")
            records = cursor.execute(sql, params).fetchall()
        finally:
            cursor.close()

        if self.max_rows is not None and len(records) > self.max_rows:
            raise QueryLimitExceededError(self.max_rows)

        rows = []
        for record in records:
            timestamp, value, *label_values = record
            labels = tuple(
                (name, label_value)
                for name, label_value in zip(label_columns, label_values)
                if label_value
            )
            rows.append(Row(labels=labels, value=value, timestamp=timestamp))

        logger.info(
            f"DuckDB query returned {len(rows)} rows "
            f"({len(query.matchers)} matchers, "
            f"{query.start_timestamp_ms}..{query.end_timestamp_ms})"
        )
        return rows

    def close(self) -> None:
        """Close the connection if this reader opened it."""
        if self._owns_connection:
            self._conn.close()
