"""promreader REST API module.

This module provides the FastAPI application serving the Prometheus
remote read endpoint.
"""

from promreader.api.app import app, create_app
from promreader.api.dependencies import get_metrics_registry, get_read_handler
from promreader.api.exceptions import (
    NotFoundException,
    PromReaderAPIException,
    ServiceUnavailableException,
)
from promreader.api.middleware import LoggingMiddleware, RequestIDMiddleware

__all__ = [
    "app",
    "create_app",
    "get_read_handler",
    "get_metrics_registry",
    "PromReaderAPIException",
    "NotFoundException",
    "ServiceUnavailableException",
    "RequestIDMiddleware",
    "LoggingMiddleware",
]
