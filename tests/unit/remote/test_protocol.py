"""Unit tests for the remote read wire codec."""

import pytest
import snappy

from promreader.exceptions import (
    DecompressionError,
    DeserializationError,
    UnsupportedRequestError,
)
from promreader.remote import prompb
from promreader.remote.protocol import PrometheusRemoteRead


@pytest.fixture
def protocol():
    """Create protocol handler."""
    return PrometheusRemoteRead()


class TestDecodeReadRequest:
    """Test decoding of compressed ReadRequest bodies."""

    def test_decode_valid_request(self, protocol, request_body):
        """Test a well-formed body decodes to its query."""
        read_request = protocol.decode_read_request(
            request_body(matchers=[("EQ", "__name__", "up"), ("RE", "job", "node.*")])
        )

        assert len(read_request.queries) == 1
        query = read_request.queries[0]
        assert query.start_timestamp_ms == 1704067200000
        assert query.end_timestamp_ms == 1704070800000
        assert [(m.type, m.name, m.value) for m in query.matchers] == [
            (prompb.LabelMatcher.EQ, "__name__", "up"),
            (prompb.LabelMatcher.RE, "job", "node.*"),
        ]

    def test_round_trip(self, protocol, read_request):
        """Test encoding then decoding preserves the request."""
        original = read_request(
            matchers=[("NEQ", "env", "dev"), ("NRE", "instance", "10\\..*")],
            start_ms=1,
            end_ms=2,
        )
        original.accepted_response_types.append(prompb.ReadRequest.SAMPLES)

        decoded = protocol.decode_read_request(protocol.encode_read_request(original))

        assert decoded == original

    def test_invalid_snappy(self, protocol):
        """Test a body that is not Snappy data is rejected."""
        with pytest.raises(DecompressionError) as exc_info:
            protocol.decode_read_request(b"\x64")

        assert exc_info.value.message.startswith("Failed to decompress")

    def test_invalid_protobuf(self, protocol):
        """Test valid Snappy wrapping an invalid message is rejected."""
        with pytest.raises(DeserializationError) as exc_info:
            protocol.decode_read_request(snappy.compress(b"\x0a\x05ab"))

        assert exc_info.value.message.startswith("Failed to decode")


class TestValidateReadRequest:
    """Test query count validation."""

    def test_single_query(self, protocol, read_request):
        """Test the only query is returned."""
        query = protocol.validate_read_request(read_request())
        assert query.matchers[0].name == "host"

    @pytest.mark.parametrize("query_count", [0, 2, 5])
    def test_rejects_other_query_counts(self, protocol, read_request, query_count):
        """Test requests without exactly one query are rejected."""
        with pytest.raises(UnsupportedRequestError) as exc_info:
            protocol.validate_read_request(read_request(query_count=query_count))

        assert exc_info.value.message == f"Can only handle one query, got {query_count}"
        assert exc_info.value.context["query_count"] == query_count

    def test_chunked_only_client_still_served(self, protocol, read_request):
        """Test a client asking only for chunks still gets its query back."""
        request = read_request()
        request.accepted_response_types.append(prompb.ReadRequest.STREAMED_XOR_CHUNKS)

        assert protocol.validate_read_request(request) is request.queries[0]


class TestReadResponse:
    """Test building and encoding ReadResponse messages."""

    def _series(self, host, samples):
        ts = prompb.TimeSeries()
        ts.labels.add(name="__name__", value="up")
        ts.labels.add(name="host", value=host)
        for timestamp, value in samples:
            ts.samples.add(timestamp=timestamp, value=value)
        return ts

    def test_build_single_result(self, protocol):
        """Test all series land in one query result."""
        response = protocol.build_read_response(
            [self._series("a", [(1, 1.0)]), self._series("b", [(2, 2.0)])]
        )

        assert len(response.results) == 1
        assert len(response.results[0].timeseries) == 2

    def test_build_empty_result(self, protocol):
        """Test zero series still produce one empty result."""
        response = protocol.build_read_response([])

        assert len(response.results) == 1
        assert len(response.results[0].timeseries) == 0

    def test_encoded_response_decodes(self, protocol):
        """Test the encoded payload is Snappy-compressed protobuf."""
        response = protocol.build_read_response([self._series("a", [(1, 1.5)])])

        payload = protocol.encode_read_response(response)
        decoded = prompb.ReadResponse.FromString(snappy.decompress(payload))

        assert decoded == response
        assert protocol.decode_read_response(payload) == response

    def test_decode_response_invalid_snappy(self, protocol):
        """Test client-side decoding reports bad Snappy data."""
        with pytest.raises(DecompressionError):
            protocol.decode_read_response(b"\x64")

    def test_statistics(self, protocol):
        """Test response statistics."""
        response = protocol.build_read_response(
            [
                self._series("a", [(1000, 1.0), (3000, 2.0)]),
                self._series("b", [(2000, 3.0)]),
            ]
        )

        stats = protocol.get_statistics(response)

        assert stats == {
            "total_time_series": 2,
            "total_samples": 3,
            "unique_metrics": 1,
            "min_timestamp": 1000,
            "max_timestamp": 3000,
        }

    def test_statistics_empty(self, protocol):
        """Test statistics of an empty response."""
        stats = protocol.get_statistics(protocol.build_read_response([]))

        assert stats["total_time_series"] == 0
        assert stats["min_timestamp"] is None
