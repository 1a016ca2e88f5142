"""Prometheus parser for remote read HTTP request handling.

This module provides utilities for checking remote read HTTP requests
and building the headers of the protobuf response.
"""

import logging
from typing import Dict, Optional

from promreader.exceptions import EmptyRequestError, RequestTooLargeError

logger = logging.getLogger(__name__)


class PrometheusReadParser:
    """Parser for Prometheus remote read HTTP requests.

    Expected request format:
    - Method: POST
    - Content-Type: application/x-protobuf
    - Content-Encoding: snappy
    - X-Prometheus-Remote-Read-Version: 0.1.0 (optional)
    - Body: Snappy-compressed Protobuf ReadRequest

    Example:
        parser = PrometheusReadParser()
        parser.check_headers(headers)
        parser.validate_request_size(len(body), max_size=settings.max_request_size_bytes)
    """

    CONTENT_TYPE = "application/x-protobuf"
    CONTENT_ENCODING = "snappy"
    SUPPORTED_VERSIONS = ["0.1.0"]

    @staticmethod
    def check_headers(headers: Dict[str, str]) -> list[str]:
        """Check remote read request headers.

        Prometheus always sends the protobuf content type and snappy encoding,
        but the body is decoded regardless; mismatches are only reported.

        Args:
            headers: HTTP request headers

        Returns:
            list: Warning messages, empty if headers look as expected

        Example:
            >>> PrometheusReadParser.check_headers(
            ...     {"Content-Type": "application/x-protobuf", "Content-Encoding": "snappy"}
            ... )
            []
        """
        normalized_headers = {k.lower(): v for k, v in headers.items()}
        warnings = []

        content_type = normalized_headers.get("content-type", "")
        if PrometheusReadParser.CONTENT_TYPE not in content_type:
            warnings.append(
                f"Unexpected Content-Type: expected '{PrometheusReadParser.CONTENT_TYPE}', "
                f"got '{content_type}'"
            )

        content_encoding = normalized_headers.get("content-encoding", "")
        if PrometheusReadParser.CONTENT_ENCODING not in content_encoding.lower():
            warnings.append(
                f"Unexpected Content-Encoding: expected "
                f"'{PrometheusReadParser.CONTENT_ENCODING}', got '{content_encoding}'"
            )

        version = normalized_headers.get("x-prometheus-remote-read-version", "")
        if version and version not in PrometheusReadParser.SUPPORTED_VERSIONS:
            warnings.append(
                f"Unsupported Prometheus remote read version: {version}. "
                f"Supported versions: {PrometheusReadParser.SUPPORTED_VERSIONS}"
            )

        for warning in warnings:
            logger.warning(warning)

        return warnings

    @staticmethod
    def validate_request_size(body_size: int, max_size: int = 10 * 1024 * 1024) -> None:
        """Validate that request size is within acceptable limits.

        Args:
            body_size: Size of request body in bytes
            max_size: Maximum allowed size in bytes (default: 10 MB)

        Raises:
            EmptyRequestError: If the body is empty
            RequestTooLargeError: If the body exceeds max_size
        """
        if body_size <= 0:
            raise EmptyRequestError()

        if body_size > max_size:
            raise RequestTooLargeError(body_size, max_size)

    @staticmethod
    def get_user_agent(headers: Dict[str, str]) -> Optional[str]:
        """Extract User-Agent from request headers."""
        normalized_headers = {k.lower(): v for k, v in headers.items()}
        return normalized_headers.get("user-agent")

    @staticmethod
    def create_response_headers() -> Dict[str, str]:
        """Create response headers for a remote read response.

        Example:
            >>> PrometheusReadParser.create_response_headers()["Content-Encoding"]
            'snappy'
        """
        return {
            "Content-Type": PrometheusReadParser.CONTENT_TYPE,
            "Content-Encoding": PrometheusReadParser.CONTENT_ENCODING,
        }

    @staticmethod
    def create_request_headers() -> Dict[str, str]:
        """Create headers for sending a remote read request."""
        return {
            "Content-Type": PrometheusReadParser.CONTENT_TYPE,
            "Content-Encoding": PrometheusReadParser.CONTENT_ENCODING,
            "X-Prometheus-Remote-Read-Version": PrometheusReadParser.SUPPORTED_VERSIONS[0],
        }
