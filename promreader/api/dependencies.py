"""FastAPI dependencies for promreader API.

This module provides dependency injection for the objects built at
application startup and kept on ``app.state``.
"""

from typing import Annotated

from fastapi import Depends, Request
from prometheus_client import CollectorRegistry

from promreader.api.exceptions import ServiceUnavailableException
from promreader.remote.handler import RemoteReadHandler


def get_read_handler(request: Request) -> RemoteReadHandler:
    """Return the application's remote read handler.

    Raises:
        ServiceUnavailableException: If the application has not started yet
    """
    handler = getattr(request.app.state, "read_handler", None)
    if handler is None:
        raise ServiceUnavailableException("Remote read handler is not initialized")
    return handler


def get_metrics_registry(request: Request) -> CollectorRegistry | None:
    """Return the registry holding read metrics, or None when disabled."""
    return getattr(request.app.state, "metrics_registry", None)


ReadHandler = Annotated[RemoteReadHandler, Depends(get_read_handler)]
MetricsRegistry = Annotated[CollectorRegistry | None, Depends(get_metrics_registry)]
