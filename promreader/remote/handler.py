"""Remote read transcoding pipeline.

This module wires the remote read steps together:
1. Decompress and decode the ReadRequest
2. Validate that it carries exactly one query
3. Run the query through the store reader
4. Group rows into time series
5. Encode and compress the ReadResponse
"""

import asyncio
import logging
import time
from dataclasses import dataclass

from promreader.exceptions import (
    ClientFormatError,
    EncodingError,
    UpstreamError,
)
from promreader.observability import NullObserver, ReadObserver
from promreader.remote.converter import SeriesGrouper, SeriesIdentity, TimestampPolicy
from promreader.remote.protocol import PrometheusRemoteRead
from promreader.store.base import Reader

logger = logging.getLogger(__name__)


@dataclass
class ReadResult:
    """
    Result of serving one remote read request.

    Attributes:
        payload: Snappy-compressed Protobuf ReadResponse
        row_count: Rows returned by the store
        series_count: Time series in the response
        sample_count: Samples in the response
        duration_seconds: Time spent in the pipeline
    """

    payload: bytes
    row_count: int
    series_count: int
    sample_count: int
    duration_seconds: float


class RemoteReadHandler:
    """Serve Prometheus remote read requests from a store reader.

    Errors are raised as ``ClientFormatError`` (bad payload, wrong query
    count), ``UpstreamError`` (store failure or bad rows) or
    ``EncodingError`` (response serialization). The store is never called
    for a request that fails decoding or validation.

    Example:
        handler = RemoteReadHandler(DuckDBReader("metrics.duckdb"))
        result = await handler.handle(await request.body())
        return Response(result.payload, headers=PrometheusReadParser.create_response_headers())
    """

    def __init__(
        self,
        reader: Reader,
        observer: ReadObserver | None = None,
        series_identity: SeriesIdentity = "values",
        timestamp_policy: TimestampPolicy = "strict",
    ):
        """Initialize handler.

        Args:
            reader: Store reader executing the query
            observer: Receives one observation per request
            series_identity: Series key mode passed to the grouper
            timestamp_policy: Timestamp parse policy passed to the grouper
        """
        self.reader = reader
        self.observer = observer or NullObserver()
        self.protocol = PrometheusRemoteRead()
        self.grouper = SeriesGrouper(
            identity=series_identity, timestamp_policy=timestamp_policy
        )

    async def handle(self, compressed_data: bytes) -> ReadResult:
        """Serve one remote read request.

        Args:
            compressed_data: Snappy-compressed Protobuf ReadRequest

        Returns:
            ReadResult with the compressed response payload

        Raises:
            ClientFormatError: If the request is malformed or unsupported
            UpstreamError: If the store query fails
            EncodingError: If the response cannot be encoded
        """
        start_time = time.time()

        try:
            read_request = self.protocol.decode_read_request(compressed_data)
            query = self.protocol.validate_read_request(read_request)

            rows = await self._read(query)
            time_series = self.grouper.group(rows)

            read_response = self.protocol.build_read_response(time_series)
            payload = self.protocol.encode_read_response(read_response)

        except ClientFormatError:
            self._observe("client_error", start_time)
            raise
        except UpstreamError:
            self._observe("upstream_error", start_time)
            raise
        except EncodingError:
            self._observe("encoding_error", start_time)
            raise

        sample_count = sum(len(ts.samples) for ts in time_series)
        duration = self._observe(
            "success", start_time, series=len(time_series), samples=sample_count
        )

        logger.info(
            f"Returned {len(time_series)} time series, {sample_count} samples "
            f"from {len(rows)} rows in {duration:.3f}s"
        )

        return ReadResult(
            payload=payload,
            row_count=len(rows),
            series_count=len(time_series),
            sample_count=sample_count,
            duration_seconds=duration,
        )

    async def _read(self, query):
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._fetch, query)
        except UpstreamError:
            raise
        except Exception as e:
            logger.error(f"Store query failed: {e}")
            raise UpstreamError(f"Store query failed: {e}", reader=type(self.reader).__name__) from e

    def _fetch(self, query) -> list:
        # Generators are drained here so their failures surface inside _read.
        return list(self.reader.read(query))

    def _observe(self, outcome: str, start_time: float, series: int = 0, samples: int = 0) -> float:
        duration = time.time() - start_time
        self.observer.observe_request(
            outcome, duration, series=series, samples=samples
        )
        return duration
