"""Store rows to Prometheus time series converter.

This module turns the flat rows returned by a store reader into the
``TimeSeries`` messages of a remote read response. Rows that share a series
key are collapsed into one series, and their samples are appended in the
order the rows arrived.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from numbers import Real
from typing import Any, Iterable, Literal, Mapping

from promreader.exceptions import RowTimestampError, RowValidationError
from promreader.remote import prompb

logger = logging.getLogger(__name__)

VALUE_FIELD = "value"
TIMESTAMP_FIELD = "timestamp"
RESERVED_FIELDS = frozenset({VALUE_FIELD, TIMESTAMP_FIELD})

SeriesIdentity = Literal["values", "labels"]
TimestampPolicy = Literal["strict", "lenient"]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MILLISECOND = timedelta(milliseconds=1)

_RFC3339 = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})[Tt](?P<time>\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d{1,9}))?"
    r"(?P<offset>[Zz]|[+-]\d{2}:\d{2})$"
)


@dataclass(frozen=True)
class Row:
    """One data point returned by a store reader.

    Attributes:
        labels: Label name/value pairs in the order the store produced them
        value: Sample value
        timestamp: RFC3339 timestamp string
    """

    labels: tuple[tuple[str, str], ...]
    value: float
    timestamp: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Row":
        """Build a row from its mapping form.

        ``value`` and ``timestamp`` carry the sample; every other key is a
        label whose value must be a string.

        Raises:
            RowValidationError: If a field is missing or has the wrong type
        """
        if not isinstance(data, Mapping):
            raise RowValidationError(f"expected a mapping, got {type(data).__name__}")
        if VALUE_FIELD not in data:
            raise RowValidationError("missing 'value' field", field=VALUE_FIELD)
        if TIMESTAMP_FIELD not in data:
            raise RowValidationError("missing 'timestamp' field", field=TIMESTAMP_FIELD)

        value = data[VALUE_FIELD]
        if isinstance(value, bool) or not isinstance(value, Real):
            raise RowValidationError(
                f"'value' must be numeric, got {type(value).__name__}",
                field=VALUE_FIELD,
            )

        timestamp = data[TIMESTAMP_FIELD]
        if not isinstance(timestamp, str):
            raise RowValidationError(
                f"'timestamp' must be a string, got {type(timestamp).__name__}",
                field=TIMESTAMP_FIELD,
            )

        labels = []
        for name, label_value in data.items():
            if name in RESERVED_FIELDS:
                continue
            if not isinstance(label_value, str):
                raise RowValidationError(
                    f"label {name!r} must be a string, got {type(label_value).__name__}",
                    field=name,
                )
            labels.append((name, label_value))

        return cls(labels=tuple(labels), value=float(value), timestamp=timestamp)


def parse_timestamp_ms(value: str) -> int:
    """Parse an RFC3339 timestamp into milliseconds since the Unix epoch.

    Fractions finer than microseconds are truncated; the result is floored
    to whole milliseconds.

    Raises:
        ValueError: If the string is not an RFC3339 timestamp with an offset

    Example:
        >>> parse_timestamp_ms("2024-01-01T00:01:00Z")
        1704067260000
    """
    match = _RFC3339.match(value)
    if match is None:
        raise ValueError(f"not an RFC3339 timestamp: {value!r}")

    fraction = (match.group("fraction") or "").ljust(6, "0")[:6]
    offset = match.group("offset")
    if offset in ("Z", "z"):
        offset = "+00:00"

    dt = datetime.fromisoformat(
        f"{match.group('date')}T{match.group('time')}.{fraction}{offset}"
    )
    return (dt - _EPOCH) // _MILLISECOND


def build_series_key(row: Row, identity: SeriesIdentity = "values") -> str:
    """Compute the grouping key of a row.

    With ``identity="values"`` the key is the row's label values sorted and
    joined with commas, so label names do not take part in the identity.
    With ``identity="labels"`` the key is built from sorted name/value pairs.
    """
    if identity == "labels":
        return "\x00".join(f"{name}\x01{value}" for name, value in sorted(row.labels))
    return ",".join(sorted(value for _, value in row.labels))


class SeriesGrouper:
    """Group store rows into Prometheus time series.

    Example:
        grouper = SeriesGrouper()
        series = grouper.group(rows)
        response = protocol.build_read_response(series)
    """

    def __init__(
        self,
        identity: SeriesIdentity = "values",
        timestamp_policy: TimestampPolicy = "strict",
    ):
        """Initialize grouper.

        Args:
            identity: Series key mode ("values" or "labels")
            timestamp_policy: "strict" raises on malformed timestamps,
                "lenient" stores them as epoch 0
        """
        self.identity = identity
        self.timestamp_policy = timestamp_policy

    def _timestamp_ms(self, row: Row, index: int) -> int:
        try:
            return parse_timestamp_ms(row.timestamp)
        except ValueError as e:
            if self.timestamp_policy == "strict":
                raise RowTimestampError(row.timestamp, row_index=index) from e
            logger.warning(
                f"Row {index} has malformed timestamp {row.timestamp!r}, using epoch 0"
            )
            return 0

    def group(
        self, rows: Iterable[Row | Mapping[str, Any]]
    ) -> list[prompb.TimeSeries]:
        """Convert rows into time series.

        Args:
            rows: Rows from the store, as ``Row`` objects or mappings

        Returns:
            List[TimeSeries]: One series per distinct series key

        Raises:
            RowValidationError: If a mapping row violates the row contract
            RowTimestampError: If a timestamp is malformed under the strict policy
        """
        series_by_key: dict[str, prompb.TimeSeries] = {}
        row_count = 0

        for index, raw in enumerate(rows):
            row = raw if isinstance(raw, Row) else Row.from_mapping(raw)
            row_count += 1

            key = build_series_key(row, self.identity)
            series = series_by_key.get(key)
            if series is None:
                series = prompb.TimeSeries()
                for name, value in sorted(row.labels):
                    series.labels.add(name=name, value=value)
                series_by_key[key] = series

            series.samples.add(value=row.value, timestamp=self._timestamp_ms(row, index))

        logger.debug(f"Grouped {row_count} rows into {len(series_by_key)} time series")
        return list(series_by_key.values())
