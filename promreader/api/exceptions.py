"""HTTP errors for the non-protocol endpoints (health, metrics).

Remote read failures are ``promreader.exceptions.PromReaderError`` and are
rendered as plain text by the application's exception handlers instead.
"""

from fastapi import HTTPException, status


class PromReaderAPIException(HTTPException):
    """Base for errors rendered as JSON ``{"detail": ..., "request_id": ...}``."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error"

    def __init__(self, detail: str | None = None):
        super().__init__(status_code=type(self).status_code, detail=detail or self.default_detail)


class NotFoundException(PromReaderAPIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found"


class ServiceUnavailableException(PromReaderAPIException):
    """Raised before the lifespan has built the read handler."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Service temporarily unavailable"
