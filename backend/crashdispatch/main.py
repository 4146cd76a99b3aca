"""FastAPI application for the crashdispatch backend."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from crashdispatch.config import get_settings
from crashdispatch.database import check_db_ready
from crashdispatch.exceptions import ConflictError, InvalidInputError, NotFoundError
from crashdispatch.limiter import limiter
from crashdispatch.routers import (
    accidents_router,
    dispatch_router,
    emergency_services_router,
    health_router,
    notifications_router,
    severity_router,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    logger.info("Starting crashdispatch backend...")

    # Verify database is ready
    try:
        await check_db_ready()
        logger.info("Database ready")
    except Exception as e:
        logger.error(f"Database not ready: {e}")
        raise

    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY not set; evidence analysis will use the fallback result")

    yield

    logger.info("crashdispatch backend shut down")


# Create FastAPI app
app = FastAPI(
    title="Crash Dispatch API",
    description="Accident severity classification and emergency dispatch",
    version="0.1.0",
    lifespan=lifespan,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    """Covers InvalidTransitionError as well."""
    return JSONResponse(status_code=409, content={"detail": str(exc)})


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unhandled exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Include routers
app.include_router(health_router)
app.include_router(accidents_router, prefix=settings.api_v1_prefix)
app.include_router(dispatch_router, prefix=settings.api_v1_prefix)
app.include_router(emergency_services_router, prefix=settings.api_v1_prefix)
app.include_router(notifications_router, prefix=settings.api_v1_prefix)
app.include_router(severity_router, prefix=settings.api_v1_prefix)

# Stored evidence, read-only
app.mount(
    "/evidence",
    StaticFiles(directory=settings.evidence_storage_dir, check_dir=False),
    name="evidence",
)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Crash Dispatch API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "crashdispatch.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
