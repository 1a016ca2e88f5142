"""FastAPI application factory and configuration."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CollectorRegistry

from promreader import __version__
from promreader.api.exceptions import PromReaderAPIException
from promreader.api.middleware import LoggingMiddleware, RequestIDMiddleware
from promreader.api.routers import health_router, metrics_router, read_router
from promreader.config import Settings, get_settings
from promreader.exceptions import PromReaderError, get_http_status
from promreader.logging_config import log_error, setup_logging
from promreader.observability import NullObserver, PrometheusObserver, ReadObserver
from promreader.remote.handler import RemoteReadHandler
from promreader.store.base import Reader
from promreader.store.duckdb_reader import DuckDBReader

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown tasks:
    - Startup: Configure logging, open the DuckDB reader (unless one was
      injected) and build the remote read handler
    - Shutdown: Close the reader if it was opened here

    Args:
        app: FastAPI application instance

    Yields:
        None
    """
    settings: Settings = app.state.settings
    setup_logging(settings.log_level, settings.log_format)

    logger.info(
        "application_starting",
        host=settings.promreader_host,
        port=settings.promreader_port,
        version=__version__,
    )

    owns_reader = False
    try:
        reader: Reader | None = app.state.reader
        if reader is None:
            reader = DuckDBReader(
                database=settings.duckdb_path,
                table=settings.duckdb_table,
                memory_limit=settings.duckdb_memory_limit,
                threads=settings.duckdb_threads,
                max_rows=settings.max_rows_per_query,
            )
            owns_reader = True
            app.state.reader = reader
            logger.info(
                "store_reader_initialized",
                backend="duckdb",
                database=settings.duckdb_path,
                table=settings.duckdb_table,
            )

        app.state.read_handler = RemoteReadHandler(
            reader,
            observer=app.state.observer,
            series_identity=settings.series_identity,
            timestamp_policy=settings.timestamp_policy,
        )
        logger.info(
            "read_handler_initialized",
            series_identity=settings.series_identity,
            timestamp_policy=settings.timestamp_policy,
        )
    except Exception as e:
        logger.error("initialization_failed", error=str(e), exc_info=True)
        raise

    yield

    logger.info("application_shutting_down")
    app.state.read_handler = None
    if owns_reader:
        try:
            app.state.reader.close()
            app.state.reader = None
            logger.info("store_reader_closed")
        except Exception as e:
            logger.error("shutdown_error", error=str(e), exc_info=True)


def create_app(
    reader: Reader | None = None,
    observer: ReadObserver | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        reader: Store reader to serve queries from (DuckDB from settings if omitted)
        observer: Read observer (Prometheus metrics if enabled and omitted)
        settings: Settings to use instead of the global settings

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="promreader API",
        description="Prometheus remote read endpoint backed by DuckDB",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.state.settings = settings
    app.state.reader = reader
    app.state.read_handler = None
    app.state.metrics_registry = None

    if observer is None:
        if settings.metrics_enabled:
            registry = CollectorRegistry()
            observer = PrometheusObserver(registry)
            app.state.metrics_registry = registry
        else:
            observer = NullObserver()
    elif isinstance(observer, PrometheusObserver):
        app.state.metrics_registry = observer.registry
    app.state.observer = observer

    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(read_router)
    app.include_router(metrics_router)

    logger.info("application_created", title=app.title, version=app.version)
    return app


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers.

    Remote read errors are returned as plain error text; there is no
    structured error body in the protocol.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(PromReaderError)
    async def promreader_exception_handler(
        request: Request,
        exc: PromReaderError,
    ) -> PlainTextResponse:
        """Handle PromReaderError and all subclasses."""
        request_id = getattr(request.state, "request_id", "unknown")
        status_code = get_http_status(exc)

        if status_code >= 500:
            log_error(
                logger,
                exc,
                operation="remote_read",
                path=request.url.path,
                request_id=request_id,
                **exc.context,
            )
        else:
            logger.warning(
                "remote_read_rejected",
                path=request.url.path,
                status_code=status_code,
                error_type=type(exc).__name__,
                detail=exc.message,
                request_id=request_id,
            )

        return PlainTextResponse(content=exc.message, status_code=status_code)

    @app.exception_handler(PromReaderAPIException)
    async def promreader_api_exception_handler(
        request: Request,
        exc: PromReaderAPIException,
    ) -> JSONResponse:
        """Handle PromReaderAPIException and all subclasses."""
        request_id = getattr(request.state, "request_id", "unknown")
        logger.warning(
            "api_exception",
            path=request.url.path,
            status_code=exc.status_code,
            detail=exc.detail,
            request_id=request_id,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": request_id,
            },
            headers=exc.headers,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request,
        exc: Exception,
    ) -> PlainTextResponse:
        """Handle unexpected exceptions."""
        request_id = getattr(request.state, "request_id", "unknown")
        logger.error(
            "unexpected_error",
            path=request.url.path,
            error=str(exc),
            request_id=request_id,
            exc_info=True,
        )
        return PlainTextResponse(
            content="Internal server error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


app = create_app()
