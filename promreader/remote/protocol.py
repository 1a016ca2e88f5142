"""Prometheus remote read protocol handler.

This module provides support for decoding Prometheus remote read requests
and encoding read responses, including Snappy (de)compression and Protobuf
(de)serialization.
"""

import logging
from typing import Any, Dict, Iterable

import snappy
from google.protobuf.message import DecodeError

from promreader.exceptions import (
    DecompressionError,
    DeserializationError,
    EncodingError,
    UnsupportedRequestError,
)
from promreader.remote import prompb

logger = logging.getLogger(__name__)


class PrometheusRemoteRead:
    """Handler for Prometheus remote read protocol.

    Protocol details:
    - Method: POST
    - Content-Type: application/x-protobuf
    - Content-Encoding: snappy
    - Body: Snappy-compressed Protobuf ReadRequest / ReadResponse

    Example:
        handler = PrometheusRemoteRead()

        read_request = handler.decode_read_request(compressed_data)
        query = handler.validate_read_request(read_request)

        payload = handler.encode_read_response(
            handler.build_read_response(time_series)
        )
    """

    @staticmethod
    def decode_read_request(compressed_data: bytes) -> prompb.ReadRequest:
        """Decode Prometheus remote read request.

        Args:
            compressed_data: Snappy-compressed Protobuf data

        Returns:
            ReadRequest: Decoded read request

        Raises:
            DecompressionError: If Snappy decompression fails
            DeserializationError: If Protobuf decoding fails

        Example:
            >>> handler = PrometheusRemoteRead()
            >>> read_request = handler.decode_read_request(request_body)
            >>> print(f"Received {len(read_request.queries)} queries")
        """
        try:
            logger.debug(f"Decompressing {len(compressed_data)} bytes with Snappy")
            decompressed = snappy.decompress(compressed_data)
        except snappy.UncompressError as e:
            logger.error(f"Failed to decompress Snappy data: {e}")
            raise DecompressionError(str(e) or "invalid snappy data") from e
        except Exception as e:
            logger.error(f"Failed to decompress Snappy data: {e}")
            raise DecompressionError(str(e) or type(e).__name__) from e

        logger.debug(f"Decompressed to {len(decompressed)} bytes")

        read_request = prompb.ReadRequest()
        try:
            read_request.ParseFromString(decompressed)
        except DecodeError as e:
            logger.error(f"Failed to decode Prometheus read request: {e}")
            raise DeserializationError(str(e) or "invalid protobuf message") from e

        logger.info(f"Decoded ReadRequest with {len(read_request.queries)} queries")
        return read_request

    @staticmethod
    def validate_read_request(read_request: prompb.ReadRequest) -> prompb.Query:
        """Validate a ReadRequest and return its single query.

        Only single-query requests are served; batching several queries in
        one request is rejected.

        Raises:
            UnsupportedRequestError: If the request does not hold exactly one query
        """
        if len(read_request.queries) != 1:
            logger.error(
                f"Rejecting read request with {len(read_request.queries)} queries"
            )
            raise UnsupportedRequestError(len(read_request.queries))

        accepted = list(read_request.accepted_response_types)
        if accepted and prompb.ReadRequest.SAMPLES not in accepted:
            logger.warning(
                "Client did not list SAMPLES as an accepted response type; "
                "responding with SAMPLES anyway"
            )

        return read_request.queries[0]

    @staticmethod
    def build_read_response(
        time_series: Iterable[prompb.TimeSeries],
    ) -> prompb.ReadResponse:
        """Wrap time series into a single-result ReadResponse."""
        response = prompb.ReadResponse()
        response.results.add().timeseries.extend(time_series)
        return response

    @staticmethod
    def encode_read_response(read_response: prompb.ReadResponse) -> bytes:
        """Serialize and compress a ReadResponse.

        Raises:
            EncodingError: If serialization or compression fails
        """
        try:
            data = read_response.SerializeToString()
            compressed = snappy.compress(data)
        except Exception as e:
            logger.error(f"Failed to encode Prometheus read response: {e}")
            raise EncodingError(str(e)) from e

        logger.debug(
            f"Encoded ReadResponse: {len(data)} bytes, {len(compressed)} bytes compressed"
        )
        return compressed

    @staticmethod
    def encode_read_request(read_request: prompb.ReadRequest) -> bytes:
        """Serialize and compress a ReadRequest (client side)."""
        return snappy.compress(read_request.SerializeToString())

    @staticmethod
    def decode_read_response(compressed_data: bytes) -> prompb.ReadResponse:
        """Decompress and parse a ReadResponse (client side).

        Raises:
            DecompressionError: If Snappy decompression fails
            DeserializationError: If Protobuf decoding fails
        """
        try:
            decompressed = snappy.decompress(compressed_data)
        except Exception as e:
            raise DecompressionError(str(e) or type(e).__name__) from e

        read_response = prompb.ReadResponse()
        try:
            read_response.ParseFromString(decompressed)
        except DecodeError as e:
            raise DeserializationError(str(e) or "invalid protobuf message") from e
        return read_response

    @staticmethod
    def get_statistics(read_response: prompb.ReadResponse) -> Dict[str, Any]:
        """Get statistics about a read response.

        Returns:
            dict: Series and sample counts plus the sample time range
        """
        stats = {
            "total_time_series": 0,
            "total_samples": 0,
            "unique_metrics": set(),
            "min_timestamp": None,
            "max_timestamp": None,
        }

        for result in read_response.results:
            for ts in result.timeseries:
                stats["total_time_series"] += 1
                stats["total_samples"] += len(ts.samples)

                for label in ts.labels:
                    if label.name == "__name__":
                        stats["unique_metrics"].add(label.value)

                for sample in ts.samples:
                    if stats["min_timestamp"] is None or sample.timestamp < stats["min_timestamp"]:
                        stats["min_timestamp"] = sample.timestamp
                    if stats["max_timestamp"] is None or sample.timestamp > stats["max_timestamp"]:
                        stats["max_timestamp"] = sample.timestamp

        stats["unique_metrics"] = len(stats["unique_metrics"])
        return stats
