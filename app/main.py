"""FastAPI application entry point.

Category assignment service: drives taxonomy search/browse and tenant
category resolution for catalog items on behalf of the web dashboard.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import settings
from app.core.session_store import get_session_store
from app.infra.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)
from app.schemas.common import ErrorResponse
from app.services.backend_client import get_backend_client

# Import routers
from app.api.routes.health import router as health_router
from app.api.routes.sessions import router as sessions_router

# Setup logging first
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Startup:
    - Start the idle-session sweep loop

    Shutdown:
    - Stop the sweep loop and close open sessions
    - Close the backend HTTP client
    """
    logger.info(
        "Category assignment service starting",
        environment=settings.environment,
        backend_url=settings.backend_url,
    )

    store = get_session_store()
    await store.start_sweep_loop()

    yield

    logger.info("Category assignment service shutting down")

    await store.stop()
    await get_backend_client().close()
    logger.info("Cleanup complete")


# Create FastAPI app
app = FastAPI(
    title="Category Assignment Service",
    description="Taxonomy search/browse and tenant category assignment for catalog items",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment == "dev" else None,
    redoc_url=None,
)

# CORS middleware (mainly for local development)
if settings.environment == "dev":
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Bind tenant and session ids to every event logged for a session request."""
    path = request.url.path
    if not path.startswith("/sessions"):
        return await call_next(request)

    # /sessions/{session_id}/...
    parts = path.strip("/").split("/")
    bind_request_context(
        tenant_id=request.headers.get("X-Tenant-Id"),
        session_id=parts[1] if len(parts) > 1 else None,
        request_path=path,
    )
    try:
        logger.debug("Session request received", method=request.method)
        response = await call_next(request)
        logger.debug("Session request completed", status_code=response.status_code)
        return response
    finally:
        clear_request_context()


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions with a structured 500 response."""
    logger.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="Internal server error",
            error_type=type(exc).__name__,
        ).model_dump(),
    )


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(health_router, tags=["Health"])
app.include_router(sessions_router, prefix="/sessions", tags=["Assignment Sessions"])


# =============================================================================
# Root Endpoint
# =============================================================================


@app.get("/")
async def root() -> dict:
    """Root endpoint - basic service info."""
    return {
        "service": "Category Assignment Service",
        "version": __version__,
        "environment": settings.environment,
    }
