"""
SubTrack Backend: FastAPI Application Factory
================================================

What:  Builds the SubTrack API: logging, middleware, error mapping and the
       fourteen routers.
How:   create_app() assembles everything; the module-level `app` is what
       uvicorn serves (uvicorn subtrack.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌──────────┐ ┌─────────────┐ ┌───────┐ ┌──────┐         │
    │  │  Req ID  │→│  Logging    │→│ GZip  │→│ CORS │         │
    │  └──────────┘ └─────────────┘ └───────┘ └──────┘         │
    │                                                          │
    │  Routes (all /api routes behind get_current_user):       │
    │  subscriptions · invoices · line-items · services ·      │
    │  devices · assignments · vendors · team · users ·        │
    │  dashboard · reports · export · documents · /health      │
    │                                                          │
    │  Exception Handlers:                                     │
    │  ┌────────────────────────────────────────────────────┐  │
    │  │ Validation→400 │ Auth→401 │ Perm→403 │ NotFound→404│  │
    │  │ Conversion→422 │ DB→500 │ anything else→500        │  │
    │  └────────────────────────────────────────────────────┘  │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, validate configuration, log banner
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from subtrack import __version__
from subtrack.config import settings
from subtrack.database import dispose_engine
from subtrack.exceptions import (
    AuthenticationError,
    DocumentConversionError,
    NotFoundError,
    PermissionDeniedError,
    SubTrackError,
    ValidationError,
)
from subtrack.middleware.logging import RequestLoggingMiddleware
from subtrack.middleware.request_id import RequestIDMiddleware, request_id_var
from subtrack.routes import (
    assignments,
    dashboard,
    devices,
    documents,
    export,
    health,
    invoices,
    line_items,
    reports,
    services,
    subscriptions,
    team,
    users,
    vendors,
)

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the whole process.

    Format: 2024-01-15T10:30:00 [INFO] subtrack.access: GET /api/... → 200 (12.3ms)
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers are chatty at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("SubTrack Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: /health still reports, and /api calls fail with 401
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")

    if not settings.auth_enabled:
        logger.warning("AUTH_ENABLED=false: every request runs as an anonymous admin")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("SubTrack Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

GENERIC_SERVER_MESSAGE = "An internal error occurred. Please try again later."


def error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """The one error body every handler returns."""
    content: Dict[str, Any] = {"error": error, "message": message}
    if details is not None:
        content["details"] = details
    content["request_id"] = request_id_var.get("")
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _request_errors(exc: RequestValidationError) -> List[Dict[str, Any]]:
    """FastAPI's validation errors reduced to JSON-safe `{loc, msg}` pairs."""
    return [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]


def register_exception_handlers(app: FastAPI) -> None:
    """
    Handler table:
        ValidationError / RequestValidationError → 400 validation_error
        AuthenticationError                      → 401 unauthorized
        PermissionDeniedError                    → 403 forbidden
        NotFoundError / unknown route            → 404 not_found
        DocumentConversionError                  → 422 document_conversion_error
        DatabaseError / SubTrackError            → 500 server_error
        Exception                                → 500 internal_server_error

    500 bodies carry a fixed message; the real cause only goes to the log.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return error_response(400, "validation_error", exc.message, details=exc.context)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        errors = _request_errors(exc)
        logger.warning("[%s] Request validation failed: %s", request_id_var.get(""), errors)
        return error_response(
            400,
            "validation_error",
            "Missing or invalid request parameters",
            details={"errors": errors},
        )

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return error_response(
            401, "unauthorized", exc.message, headers={"WWW-Authenticate": "Bearer"}
        )

    @app.exception_handler(PermissionDeniedError)
    async def handle_permission_denied(request: Request, exc: PermissionDeniedError):
        logger.warning("[%s] Permission denied: %s", request_id_var.get(""), exc.context)
        return error_response(403, "forbidden", exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return error_response(404, "not_found", exc.message)

    @app.exception_handler(DocumentConversionError)
    async def handle_document_conversion_error(request: Request, exc: DocumentConversionError):
        logger.warning("[%s] Document conversion failed: %s", request_id_var.get(""), exc.message)
        return error_response(422, "document_conversion_error", exc.message)

    @app.exception_handler(SubTrackError)
    async def handle_server_error(request: Request, exc: SubTrackError):
        # DatabaseError and any SubTrackError without its own handler
        logger.error(
            "[%s] %s: %s | Context: %s",
            request_id_var.get(""), type(exc).__name__, exc.message, exc.context,
        )
        return error_response(500, "server_error", GENERIC_SERVER_MESSAGE)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        """Unknown routes (404) and wrong methods (405)."""
        return error_response(
            exc.status_code,
            "not_found" if exc.status_code == 404 else "http_error",
            str(exc.detail),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="SubTrack API",
        description=(
            "Subscription, invoice and asset tracking for IT teams. "
            "Ingests analysed vendor invoices, tracks spend per service, and "
            "manages licence assignments to employees and devices."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Executed in reverse order of addition: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Content-Disposition"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(subscriptions.router)
    app.include_router(invoices.router)
    app.include_router(line_items.router)
    app.include_router(services.router)
    app.include_router(devices.router)
    app.include_router(assignments.router)
    app.include_router(vendors.router)
    app.include_router(team.router)
    app.include_router(users.router)
    app.include_router(dashboard.router)
    app.include_router(reports.router)
    app.include_router(export.router)
    app.include_router(documents.router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()
