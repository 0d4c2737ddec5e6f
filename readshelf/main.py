"""
FastAPI Application Entry Point

This module creates and configures the Readshelf API.

Key Concepts:
=============

1. Application Factory Pattern
   - create_app() returns a configured app, so tests can build their own

2. Lifespan Events
   - startup: start the periodic book stats backfill
   - shutdown: stop it

3. Exception Handlers
   - Database errors become a generic 500 and are logged
   - Rate limit violations become 429 (see services.rate_limiter)
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError

from readshelf import __version__
from readshelf.config import get_settings
from readshelf.routers import books_router, me_books_router, users_router
from readshelf.services.book_stats_poller import start_book_stats_poller
from readshelf.services.rate_limiter import limiter, rate_limit_exceeded_handler

# =============================================================================
# Logging Configuration
# =============================================================================
settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# Lifespan Events
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Code before yield runs on startup, code after yield on shutdown.
    The book stats poller runs its first backfill right away and then
    on the configured cadence until shutdown.
    """
    # ----- STARTUP -----
    logger.info(f"Starting {settings.app_name} {__version__}...")
    logger.info(f"Debug mode: {settings.debug}")

    poller = start_book_stats_poller(app)

    yield

    # ----- SHUTDOWN -----
    logger.info(f"Shutting down {settings.app_name}...")

    if poller is not None:
        await poller.stop()


# =============================================================================
# Application Factory
# =============================================================================
def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.app_name,
        description="""
## Readshelf API

Reading tracker backend.

### Features
- **Library**: shelve books, rate and review them, track reading status
- **Book stats**: read, want-to-read, rating and review counters per book
- **Popular books**: catalog ranking over the precomputed counters

### Authentication
Bearer JWT issued by the identity service.
        """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.book_stats_poller = None

    # -------------------------------------------------------------------------
    # Rate Limiting
    # -------------------------------------------------------------------------
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # -------------------------------------------------------------------------
    # CORS Middleware
    # -------------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------------------------------
    # Exception Handlers
    # -------------------------------------------------------------------------
    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(
        request: Request,
        exc: SQLAlchemyError,
    ) -> JSONResponse:
        """Log database errors and hide their details from clients."""
        logger.error(f"Database error: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "detail": "A database error occurred. Please try again later."
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Catch-all handler; error details are only exposed in debug mode."""
        logger.error(f"Unhandled error: {exc}", exc_info=True)

        if settings.debug:
            return JSONResponse(
                status_code=500,
                content={"detail": str(exc)},
            )

        return JSONResponse(
            status_code=500,
            content={"detail": "An internal error occurred."},
        )

    # -------------------------------------------------------------------------
    # Register Routers
    # -------------------------------------------------------------------------
    api_prefix = f"/api/{settings.api_version}"

    app.include_router(me_books_router, prefix=api_prefix)
    app.include_router(books_router, prefix=api_prefix)
    app.include_router(users_router, prefix=api_prefix)

    # -------------------------------------------------------------------------
    # Health Check Endpoint
    # -------------------------------------------------------------------------
    @app.get(
        "/health",
        tags=["Health"],
        summary="Health check",
        description="Check if the API is running and how the last book stats backfill went.",
    )
    async def health_check(request: Request) -> dict:
        """
        Health check endpoint for load balancers and monitoring.

        Reports whether the book stats poller is alive and the outcome of
        its most recent backfill.
        """
        poller = request.app.state.book_stats_poller

        return {
            "status": "healthy",
            "app": settings.app_name,
            "version": __version__,
            "rate_limiting": {
                "enabled": settings.rate_limit_enabled,
                "default_limit": settings.rate_limit_default,
            },
            "book_stats": {
                "backfill_enabled": settings.book_stats_backfill_enabled,
                "poller_running": poller.is_running if poller else False,
                "backfill_in_progress": poller.backfill_in_progress if poller else False,
                "last_run": poller.last_run.to_dict() if poller and poller.last_run else None,
            },
        }

    @app.get(
        "/",
        tags=["Root"],
        summary="API root",
    )
    async def root() -> dict:
        """Root endpoint with API information."""
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    return app


# =============================================================================
# Application Instance
# =============================================================================
# uvicorn readshelf.main:app

app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "readshelf.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
