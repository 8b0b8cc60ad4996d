"""
FastAPI application for Visitor Calendar Sync.

This is the main entry point for the HTTP API, providing:
- Calendar connection endpoints (OAuth connect, callback, status, disconnect)
- Health endpoint
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse

from src.api.calendar_routes import router as calendar_router
from src.api.middleware import RequestIdFilter, RequestLoggingMiddleware, get_request_id
from src.api.models import ErrorResponse, HealthResponse
from src.config import get_settings
from src.database import check_connection
from src.integrations.exceptions import CalendarSyncError

logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"


# =============================================================================
# Application Lifecycle
# =============================================================================


def configure_logging(level: str) -> None:
    """Apply the configured log level and stamp records with the request ID."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s",
    )
    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Starting Visitor Calendar Sync API")
    if not settings.uses_google_oauth:
        logger.warning("Google OAuth credentials not configured; Google sync disabled")
    if not settings.uses_outlook_oauth:
        logger.warning("Outlook OAuth credentials not configured; Outlook sync disabled")

    yield

    # Shutdown
    logger.info("Shutting down Visitor Calendar Sync API")


# =============================================================================
# FastAPI Application
# =============================================================================


app = FastAPI(
    title="Visitor Calendar Sync API",
    description="""
# Visitor Calendar Sync API

Mirrors visitor meetings into the host staff member's Google or Outlook calendar.

## Connecting a calendar
1. **GET /calendar/{provider}/connect?staff_id=** - Get the consent URL
2. The provider redirects to **/calendar/{provider}/callback**
3. Tokens are stored and the browser returns to the meetings page

## Error Handling

- **200** - Success
- **302** - OAuth callback redirect (success or error flag in the query)
- **400** - Unsupported provider or missing OAuth credentials
- **422** - Validation error
- **500** - Server error
    """,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)

# Include routers
app.include_router(calendar_router)


# =============================================================================
# Exception Handlers
# =============================================================================


def error_response(status_code: int, error: ErrorResponse) -> JSONResponse:
    """JSON error body tagged with the current request ID."""
    error.request_id = get_request_id() or None
    return JSONResponse(status_code=status_code, content=error.model_dump())


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """Handle HTTP exceptions with consistent format."""
    return error_response(
        exc.status_code,
        ErrorResponse(
            error_type="http_error",
            message=str(exc.detail),
            retryable=exc.status_code >= 500,
        ),
    )


@app.exception_handler(CalendarSyncError)
async def calendar_exception_handler(request, exc: CalendarSyncError):
    """Handle calendar errors that escaped a route."""
    logger.error(f"Calendar error ({exc.provider}): {exc.message}")
    return error_response(
        502,
        ErrorResponse(
            error_type="calendar_error",
            message=exc.message,
            provider=exc.provider,
            retryable=exc.retryable,
        ),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return error_response(
        500,
        ErrorResponse(
            error_type="internal_error",
            message="An unexpected error occurred",
            retryable=True,
        ),
    )


# =============================================================================
# Health & Status Endpoints
# =============================================================================


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    tags=["System"],
)
async def health_check():
    """
    Check API health status.

    Returns:
        Health status including database and provider configuration
    """
    settings = get_settings()
    database_connected = await check_connection()

    return HealthResponse(
        status="healthy" if database_connected else "unhealthy",
        version=API_VERSION,
        database_connected=database_connected,
        google_configured=settings.uses_google_oauth,
        outlook_configured=settings.uses_outlook_oauth,
    )


def run_server(host: str = "0.0.0.0", port: int = 8000, reload: bool = False):
    """Run the API server with Uvicorn."""
    import uvicorn

    uvicorn.run(
        "src.api.main:app",
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    settings = get_settings()
    run_server(host=settings.api_host, port=settings.api_port, reload=settings.is_development)
