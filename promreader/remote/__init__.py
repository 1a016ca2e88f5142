"""Prometheus remote read protocol support for promreader.

This module provides the remote read pipeline: Snappy decompression and
Protobuf decoding of read requests, grouping of store rows into time series,
and encoding of read responses.
"""

from promreader.remote.converter import Row, SeriesGrouper
from promreader.remote.handler import ReadResult, RemoteReadHandler
from promreader.remote.parser import PrometheusReadParser
from promreader.remote.protocol import PrometheusRemoteRead

__all__ = [
    "PrometheusRemoteRead",
    "PrometheusReadParser",
    "RemoteReadHandler",
    "ReadResult",
    "Row",
    "SeriesGrouper",
]
