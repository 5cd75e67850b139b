"""
FastAPI application factory.

Wires the components together once per process:
settings → audit logger → connection manager → fallback store →
MongoDB adapter → validator and reports → routers.

The fallback store is created here and handed to the adapter, so there is
no module-level storage state; tests build a fresh app (and store) each.
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..audit import AuditLogger, configure_logging
from ..config import Settings, get_settings
from ..reports import TransactionReports
from ..services.storage import (
    MemoryStorage,
    MongoConnectionManager,
    MongoStorage,
    StorageInterface,
)
from ..validation import TransactionValidator
from . import reports, transactions

logger = structlog.get_logger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Map errors to the {"message": ..., "error": ...} response body."""

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if any(error.get("loc", ("",))[0] == "body" for error in errors):
            content = {"message": "Invalid transaction data", "error": "Malformed request body"}
        else:
            content = {
                "message": "Invalid request parameters",
                "error": "; ".join(str(error.get("msg")) for error in errors),
            }
        return JSONResponse(status_code=400, content=content)

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        request.app.state.audit.log_error(
            error_type=type(exc).__name__,
            error_message=str(exc),
            details={"method": request.method, "path": request.url.path},
        )
        logger.error("unhandled_request_error", path=request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"message": "Internal Server Error", "error": type(exc).__name__},
        )


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[StorageInterface] = None,
    connection: Optional[MongoConnectionManager] = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Settings to use; defaults to the cached environment settings
        storage: Storage to serve from; defaults to MongoDB with memory fallback
        connection: Connection manager for the default storage
    """
    settings = settings or get_settings()
    app_settings = settings.app
    server_settings = settings.server
    configure_logging(app_settings.log_level)

    audit = AuditLogger()
    if storage is None:
        connection = connection or MongoConnectionManager(settings.database, audit)
        storage = MongoStorage(
            connection,
            fallback=MemoryStorage(),
            settings=settings.database,
            audit_logger=audit,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # Runs on SIGINT/SIGTERM under uvicorn
        if connection is not None:
            await connection.close()

    app = FastAPI(
        title="Finance Tracker API",
        debug=app_settings.debug_mode,
        lifespan=lifespan,
    )
    app.state.storage = storage
    app.state.connection = connection
    app.state.audit = audit
    app.state.validator = TransactionValidator(audit)
    app.state.reports = TransactionReports(storage, app_settings.monthly_budget)

    register_error_handlers(app)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        if request.url.path.startswith(server_settings.api_prefix or "/"):
            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
        return response

    @app.get("/health")
    async def health():
        state = connection.state.value if connection is not None else "external"
        return {"status": "ok", "storage": state}

    prefix = server_settings.api_prefix
    app.include_router(transactions.router, prefix=prefix)
    app.include_router(reports.router, prefix=prefix)

    return app
