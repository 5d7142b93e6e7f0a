"""FastAPI application for the credential re-signing service.

Endpoints:
  POST   /api/verify   — Verify launch data and return it re-signed
  GET    /health       — Health check
  GET    /metrics      — Prometheus metrics (when RS_METRICS_ENABLED)
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

import resigner
from resigner.api.routes.verify import router as verify_router
from resigner.config import settings
from resigner.core.resigner import CredentialResigner
from resigner.exceptions import MisconfiguredServerError, ResignerError
from resigner.logging_config import log_startup_info, setup_logging

logger = logging.getLogger("resigner")

_STARTUP_TIME: float = 0.0


# ---------------------------------------------------------------------------
# App lifecycle
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _STARTUP_TIME
    _STARTUP_TIME = time.monotonic()
    setup_logging(settings)
    try:
        app.state.resigner = CredentialResigner.from_settings(settings)
    except MisconfiguredServerError as exc:
        logger.critical("Refusing to start: %s", exc.message)
        raise
    log_startup_info(settings)
    yield
    logger.info("Shutdown complete")


app = FastAPI(
    title="Launch-data re-signer",
    description=(
        "Verifies chat-platform launch data and re-issues it signed for a "
        "downstream authentication provider."
    ),
    version=resigner.__version__,
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Health", "description": "Health checks and version info"},
        {"name": "Verify", "description": "Launch-data verification and re-signing"},
        {"name": "Metrics", "description": "Prometheus metrics endpoint"},
    ],
)


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------
@app.exception_handler(ResignerError)
async def resigner_error_handler(request: Request, exc: ResignerError) -> JSONResponse:
    """Centralized handler for custom re-signer exceptions."""
    request_id = getattr(request.state, "request_id", "unknown")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.error_type,
            "message": exc.message,
            "request_id": request_id,
        },
    )


# ---------------------------------------------------------------------------
# CORS middleware
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=500)


# ---------------------------------------------------------------------------
# Security headers middleware
# ---------------------------------------------------------------------------
@app.middleware("http")
async def security_headers_middleware(request: Request, call_next) -> Response:
    response: Response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "no-referrer"
    response.headers["Cache-Control"] = "no-store"
    response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
    return response


# ---------------------------------------------------------------------------
# Request logging middleware (also sets request_id on state for error handler)
# ---------------------------------------------------------------------------
@app.middleware("http")
async def request_logging_middleware(request: Request, call_next) -> Response:
    request_id = str(uuid4())[:8]
    request.state.request_id = request_id
    start = time.monotonic()
    response: Response = await call_next(request)
    elapsed_ms = round((time.monotonic() - start) * 1000, 1)
    logger.info(
        "%s %s %s %.1fms [%s]",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
        request_id,
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "status_code": response.status_code,
            "duration_ms": elapsed_ms,
        },
    )
    response.headers["X-Request-ID"] = request_id
    return response


# ---------------------------------------------------------------------------
# Prometheus metrics
# ---------------------------------------------------------------------------
if settings.metrics_enabled:
    from prometheus_fastapi_instrumentator import Instrumentator

    Instrumentator(
        excluded_handlers=["/metrics"],
        should_respect_env_var=False,
    ).instrument(app).expose(app, endpoint="/metrics", tags=["Metrics"])


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"], summary="Health check")
async def health(request: Request):
    uptime_s = time.monotonic() - _STARTUP_TIME if _STARTUP_TIME > 0 else 0
    return {
        "status": "ok",
        "version": resigner.__version__,
        "uptime_seconds": round(uptime_s, 1),
        "secrets_configured": getattr(request.app.state, "resigner", None) is not None,
    }


app.include_router(verify_router)
