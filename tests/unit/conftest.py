"""Shared fixtures for promreader unit tests."""

from typing import Any, Mapping, Sequence

import pytest
import snappy

from promreader.config import reset_settings
from promreader.remote import prompb
from promreader.store.base import Reader


class RecordingReader(Reader):
    """Store reader returning canned rows and recording every query."""

    def __init__(self, rows: Sequence[Any] = (), error: Exception | None = None):
        self.rows = list(rows)
        self.error = error
        self.queries: list[prompb.Query] = []
        self.closed = False

    def read(self, query: prompb.Query) -> Sequence[Mapping[str, Any]]:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.rows

    def close(self) -> None:
        self.closed = True


def _build_request(
    query_count: int = 1,
    matchers: Sequence[tuple[str, str, str]] = (("EQ", "host", "a"),),
    start_ms: int = 1704067200000,
    end_ms: int = 1704070800000,
) -> prompb.ReadRequest:
    read_request = prompb.ReadRequest()
    for _ in range(query_count):
        query = read_request.queries.add(
            start_timestamp_ms=start_ms, end_timestamp_ms=end_ms
        )
        for matcher_type, name, value in matchers:
            query.matchers.add(
                type=getattr(prompb.LabelMatcher, matcher_type), name=name, value=value
            )
    return read_request


def _series_map(time_series) -> dict[tuple, list[tuple[int, float]]]:
    return {
        tuple((label.name, label.value) for label in ts.labels): [
            (sample.timestamp, sample.value) for sample in ts.samples
        ]
        for ts in time_series
    }


@pytest.fixture(autouse=True)
def clean_settings():
    """Reset the settings singleton around every test."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def example_rows():
    """Three rows forming two series (host a with two samples, host b with one)."""
    return [
        {"host": "a", "value": 1.0, "timestamp": "2024-01-01T00:00:00Z"},
        {"host": "a", "value": 2.0, "timestamp": "2024-01-01T00:01:00Z"},
        {"host": "b", "value": 3.0, "timestamp": "2024-01-01T00:00:00Z"},
    ]


@pytest.fixture
def recording_reader():
    """Factory for RecordingReader instances."""
    return RecordingReader


@pytest.fixture
def read_request():
    """Factory for ReadRequest messages.

    Matchers are given as (type name, label name, value) tuples.
    """
    return _build_request


@pytest.fixture
def request_body():
    """Factory for Snappy-compressed ReadRequest bodies."""

    def _build(**kwargs) -> bytes:
        return snappy.compress(_build_request(**kwargs).SerializeToString())

    return _build


@pytest.fixture
def series_map():
    """Index series by their label pairs for order-independent assertions."""
    return _series_map
