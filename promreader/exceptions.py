"""Custom exceptions for promreader."""

from typing import Any


class PromReaderError(Exception):
    """Base exception for all promreader errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
        }


class ConfigurationError(PromReaderError):
    """Configuration-related errors."""

    pass


class ClientFormatError(PromReaderError):
    """Malformed or unsupported remote read request from the client."""

    pass


class EmptyRequestError(ClientFormatError):
    """Request body is empty."""

    def __init__(self) -> None:
        super().__init__("Request body is empty")


class RequestTooLargeError(ClientFormatError):
    """Request body exceeds the configured size limit."""

    def __init__(self, size: int, max_size: int) -> None:
        super().__init__(
            f"Request body too large: {size} bytes (max: {max_size} bytes)",
            size=size,
            max_size=max_size,
        )


class DecompressionError(ClientFormatError):
    """Request body is not valid Snappy data."""

    def __init__(self, details: str) -> None:
        super().__init__(
            f"Failed to decompress remote read request: {details}", details=details
        )


class DeserializationError(ClientFormatError):
    """Decompressed body is not a valid ReadRequest message."""

    def __init__(self, details: str) -> None:
        super().__init__(
            f"Failed to decode remote read request: {details}", details=details
        )


class UnsupportedRequestError(ClientFormatError):
    """Request does not contain exactly one query."""

    def __init__(self, query_count: int) -> None:
        super().__init__(
            f"Can only handle one query, got {query_count}",
            query_count=query_count,
        )


class UpstreamError(PromReaderError):
    """Backing store failed or returned data violating the row contract."""

    pass


class RowValidationError(UpstreamError):
    """Row returned by the store has the wrong shape or types."""

    def __init__(self, details: str, field: str | None = None) -> None:
        super().__init__(f"Invalid row from store: {details}", field=field)


class RowTimestampError(UpstreamError):
    """Row timestamp is not a valid RFC3339 timestamp."""

    def __init__(self, value: str, row_index: int | None = None) -> None:
        super().__init__(
            f"Invalid row timestamp {value!r}"
            + (f" at row {row_index}" if row_index is not None else ""),
            value=value,
            row_index=row_index,
        )


class QueryLimitExceededError(UpstreamError):
    """Store query returned more rows than allowed."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"Query returned more than {limit} rows", limit=limit)


class EncodingError(PromReaderError):
    """Failed to serialize or compress the read response."""

    def __init__(self, details: str) -> None:
        super().__init__(
            f"Failed to encode remote read response: {details}", details=details
        )


def get_http_status(error: Exception) -> int:
    """Map exception to HTTP status code."""
    status_map = {
        ClientFormatError: 400,
        UpstreamError: 500,
        EncodingError: 500,
        ConfigurationError: 500,
    }

    for exc_type, status in status_map.items():
        if isinstance(error, exc_type):
            return status

    return 500
