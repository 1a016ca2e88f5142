"""Unit tests for the row to time series converter."""

import logging
import random

import pytest

from promreader.exceptions import RowTimestampError, RowValidationError
from promreader.remote.converter import (
    Row,
    SeriesGrouper,
    build_series_key,
    parse_timestamp_ms,
)


class TestParseTimestamp:
    """Test RFC3339 parsing into epoch milliseconds."""

    def test_utc_timestamps(self):
        """Test Z-suffixed timestamps."""
        assert parse_timestamp_ms("2024-01-01T00:00:00Z") == 1704067200000
        assert parse_timestamp_ms("2024-01-01T00:01:00Z") == 1704067260000
        assert parse_timestamp_ms("1970-01-01T00:00:00Z") == 0

    def test_offset_is_applied(self):
        """Test numeric offsets shift the instant."""
        assert parse_timestamp_ms("2024-01-01T01:00:00+01:00") == 1704067200000
        assert parse_timestamp_ms("2023-12-31T19:00:00-05:00") == 1704067200000

    def test_fraction_is_floored_to_milliseconds(self):
        """Test sub-millisecond digits are dropped."""
        assert parse_timestamp_ms("2024-01-01T00:00:00.1239Z") == 1704067200123
        assert parse_timestamp_ms("2024-01-01T00:00:00.999999999Z") == 1704067200999
        assert parse_timestamp_ms("2024-01-01T00:00:00.5Z") == 1704067200500

    def test_pre_epoch_timestamp(self):
        """Test instants before 1970 are negative."""
        assert parse_timestamp_ms("1969-12-31T23:59:59Z") == -1000

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "yesterday",
            "2024-01-01",
            "2024-01-01T00:00:00",
            "2024-01-01 00:00:00Z",
            "2024-13-01T00:00:00Z",
            "2024-01-01T00:00:00.Z",
        ],
    )
    def test_malformed_timestamps(self, value):
        """Test malformed timestamps raise ValueError."""
        with pytest.raises(ValueError):
            parse_timestamp_ms(value)


class TestRow:
    """Test row validation."""

    def test_from_mapping(self):
        """Test labels are every key except value and timestamp."""
        row = Row.from_mapping(
            {"host": "a", "value": 3, "dc": "eu", "timestamp": "2024-01-01T00:00:00Z"}
        )

        assert row.labels == (("host", "a"), ("dc", "eu"))
        assert row.value == 3.0
        assert isinstance(row.value, float)
        assert row.timestamp == "2024-01-01T00:00:00Z"

    def test_row_without_labels(self):
        """Test a row may carry no labels at all."""
        row = Row.from_mapping({"value": 1.5, "timestamp": "2024-01-01T00:00:00Z"})
        assert row.labels == ()

    @pytest.mark.parametrize(
        "data, field",
        [
            ({"timestamp": "2024-01-01T00:00:00Z"}, "value"),
            ({"value": 1.0}, "timestamp"),
            ({"value": "1.0", "timestamp": "2024-01-01T00:00:00Z"}, "value"),
            ({"value": True, "timestamp": "2024-01-01T00:00:00Z"}, "value"),
            ({"value": 1.0, "timestamp": 1704067200000}, "timestamp"),
            ({"value": 1.0, "timestamp": "2024-01-01T00:00:00Z", "port": 80}, "port"),
        ],
    )
    def test_invalid_rows(self, data, field):
        """Test rows violating the contract are rejected."""
        with pytest.raises(RowValidationError) as exc_info:
            Row.from_mapping(data)

        assert exc_info.value.context["field"] == field

    @pytest.mark.parametrize("data", [None, ["value", "timestamp"], "row"])
    def test_non_mapping_rows(self, data):
        """Test rows that are not mappings are rejected."""
        with pytest.raises(RowValidationError, match="expected a mapping"):
            Row.from_mapping(data)

    def test_row_is_immutable(self):
        """Test rows cannot be modified after creation."""
        row = Row(labels=(), value=1.0, timestamp="2024-01-01T00:00:00Z")
        with pytest.raises(AttributeError):
            row.value = 2.0


class TestSeriesKey:
    """Test series key construction."""

    def test_values_identity_ignores_names(self):
        """Test label names do not take part in the default key."""
        first = Row(labels=(("x", "1"), ("y", "2")), value=0.0, timestamp="")
        second = Row(labels=(("p", "2"), ("q", "1")), value=0.0, timestamp="")

        assert build_series_key(first) == "1,2"
        assert build_series_key(first) == build_series_key(second)

    def test_labels_identity_uses_names(self):
        """Test the labels mode distinguishes label names."""
        first = Row(labels=(("x", "1"), ("y", "2")), value=0.0, timestamp="")
        second = Row(labels=(("p", "2"), ("q", "1")), value=0.0, timestamp="")

        assert build_series_key(first, "labels") != build_series_key(second, "labels")

    def test_key_ignores_label_order(self):
        """Test both modes are independent of label order."""
        first = Row(labels=(("x", "1"), ("y", "2")), value=0.0, timestamp="")
        second = Row(labels=(("y", "2"), ("x", "1")), value=0.0, timestamp="")

        assert build_series_key(first) == build_series_key(second)
        assert build_series_key(first, "labels") == build_series_key(second, "labels")


class TestSeriesGrouper:
    """Test grouping rows into time series."""

    def test_groups_rows_into_series(self, example_rows, series_map):
        """Test rows sharing labels collapse into one series."""
        series = SeriesGrouper().group(example_rows)

        assert len(series) == 2
        assert series_map(series) == {
            (("host", "a"),): [(1704067200000, 1.0), (1704067260000, 2.0)],
            (("host", "b"),): [(1704067200000, 3.0)],
        }

    def test_series_in_first_seen_order(self, example_rows):
        """Test series are emitted in the order their key first appeared."""
        series = SeriesGrouper().group(list(reversed(example_rows)))

        assert [ts.labels[0].value for ts in series] == ["b", "a"]

    def test_zero_rows(self):
        """Test an empty result produces no series."""
        assert SeriesGrouper().group([]) == []

    def test_labels_sorted_by_name(self, series_map):
        """Test series labels are emitted sorted by name."""
        rows = [{"zone": "z1", "app": "web", "value": 1.0, "timestamp": "2024-01-01T00:00:00Z"}]

        series = SeriesGrouper().group(rows)

        assert [label.name for label in series[0].labels] == ["app", "zone"]

    def test_accepts_row_objects(self, series_map):
        """Test Row instances are grouped without conversion."""
        rows = [Row(labels=(("host", "a"),), value=7.0, timestamp="2024-01-01T00:00:00Z")]

        assert series_map(SeriesGrouper().group(rows)) == {
            (("host", "a"),): [(1704067200000, 7.0)]
        }

    def test_equal_values_under_different_names_collapse(self):
        """Test the default identity merges rows whose label values match."""
        rows = [
            {"x": "1", "y": "2", "value": 1.0, "timestamp": "2024-01-01T00:00:00Z"},
            {"p": "2", "q": "1", "value": 2.0, "timestamp": "2024-01-01T00:01:00Z"},
        ]

        series = SeriesGrouper().group(rows)

        assert len(series) == 1
        assert [(label.name, label.value) for label in series[0].labels] == [
            ("x", "1"),
            ("y", "2"),
        ]
        assert [sample.value for sample in series[0].samples] == [1.0, 2.0]

    def test_labels_identity_keeps_names_apart(self):
        """Test the labels identity keeps differently named series apart."""
        rows = [
            {"x": "1", "y": "2", "value": 1.0, "timestamp": "2024-01-01T00:00:00Z"},
            {"p": "2", "q": "1", "value": 2.0, "timestamp": "2024-01-01T00:01:00Z"},
        ]

        series = SeriesGrouper(identity="labels").group(rows)

        assert len(series) == 2

    def test_samples_keep_arrival_order(self):
        """Test samples are appended in row order, not sorted by time."""
        rows = [
            {"host": "a", "value": 2.0, "timestamp": "2024-01-01T00:01:00Z"},
            {"host": "a", "value": 1.0, "timestamp": "2024-01-01T00:00:00Z"},
        ]

        series = SeriesGrouper().group(rows)

        assert [sample.timestamp for sample in series[0].samples] == [
            1704067260000,
            1704067200000,
        ]

    def test_permutation_keeps_series_contents(self, series_map):
        """Test shuffling rows changes only the order within each series."""
        rows = [
            {"host": host, "value": float(i), "timestamp": f"2024-01-01T00:0{i}:00Z"}
            for i, host in enumerate(["a", "b", "a", "c", "b", "a"])
        ]
        shuffled = rows[:]
        random.Random(42).shuffle(shuffled)

        original = series_map(SeriesGrouper().group(rows))
        permuted = series_map(SeriesGrouper().group(shuffled))

        assert original.keys() == permuted.keys()
        for key, samples in original.items():
            assert sorted(permuted[key]) == sorted(samples)
            expected = [
                (parse_timestamp_ms(row["timestamp"]), row["value"])
                for row in shuffled
                if (("host", row["host"]),) == key
            ]
            assert permuted[key] == expected

    def test_strict_policy_rejects_bad_timestamp(self):
        """Test malformed timestamps raise under the strict policy."""
        rows = [
            {"host": "a", "value": 1.0, "timestamp": "2024-01-01T00:00:00Z"},
            {"host": "a", "value": 2.0, "timestamp": "not-a-time"},
        ]

        with pytest.raises(RowTimestampError) as exc_info:
            SeriesGrouper().group(rows)

        assert exc_info.value.context["row_index"] == 1
        assert "not-a-time" in exc_info.value.message

    def test_lenient_policy_uses_epoch_zero(self, caplog):
        """Test malformed timestamps become 0 under the lenient policy."""
        rows = [{"host": "a", "value": 2.0, "timestamp": "not-a-time"}]

        with caplog.at_level(logging.WARNING):
            series = SeriesGrouper(timestamp_policy="lenient").group(rows)

        assert series[0].samples[0].timestamp == 0
        assert series[0].samples[0].value == 2.0
        assert "not-a-time" in caplog.text

    def test_invalid_row_rejected(self):
        """Test an invalid row aborts the conversion."""
        with pytest.raises(RowValidationError):
            SeriesGrouper().group([{"host": "a", "timestamp": "2024-01-01T00:00:00Z"}])
