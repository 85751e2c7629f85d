"""FastAPI application for the MUC library verification API.

Mounts the two verification endpoints under /api/v1, renders every failure
as ``{"error": ..., "code": ...}`` and exposes /health for the load balancer.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from app.api.v1.router import router as v1_router
from app.core.config import settings
from app.core.database import dispose_engine
from app.core.errors import APIError
from app.core.rate_limiting import limiter, rate_limit_exceeded_handler
from app.core.responses import ErrorResponse

logger = structlog.get_logger()

# Headers sent by the library UI and the hosted auth client
_CORS_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Release pooled database connections on shutdown."""
    yield
    await dispose_engine()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Hardening headers for a JSON-only API.

    Verification responses carry sign-in links, so they are never cached.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store, max-age=0"
        # TLS terminates at the proxy in production only
        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response


def _error_body(message: str, code: str, details: list[dict] | None = None) -> dict:
    return ErrorResponse(error=message, code=code, details=details).model_dump(
        exclude_none=True
    )


def api_error_handler(_request: Request, exc: APIError) -> JSONResponse:
    """Render a domain error with its own status and code."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, exc.code, exc.details),
    )


def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request-body validation failures as 400 VALIDATION_ERROR.

    A malformed email or a code that is not six digits lands here, before
    any store is touched.
    """
    details = [
        {"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=_error_body("Request validation failed", "VALIDATION_ERROR", details),
    )


def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log an unexpected failure and answer with a generic 500."""
    logger.exception("Unhandled exception", exc_info=exc, path=str(request.url.path))
    return JSONResponse(
        status_code=500,
        content=_error_body("An unexpected error occurred", "INTERNAL_ERROR"),
    )


def create_app() -> FastAPI:
    """Build the application.

    Returns:
        FastAPI instance with middleware, error handlers and routes attached.
    """
    logging.getLogger().setLevel(settings.log_level.upper())

    app = FastAPI(
        title="MUC Library Verification API",
        version="1.0.0",
        description="Passwordless email-code sign-in for the MUC library",
        lifespan=lifespan,
    )

    # Added last so it wraps everything and answers preflights first
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["POST", "GET", "OPTIONS"],
        allow_headers=_CORS_HEADERS,
    )

    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    app.state.limiter = limiter
    app.include_router(v1_router, prefix="/api/v1")

    @app.get("/health")
    def health_check() -> dict:
        return {"status": "healthy"}

    return app


app = create_app()
