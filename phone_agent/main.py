"""
Phone Agent - Main Application
==============================

FastAPI application entry point for the Phone Agent service.

This module sets up:
- FastAPI application with CORS
- Route registration
- Middleware (request timing, error handling)
- Lifespan management (startup/shutdown)

Usage:
    # Development
    uvicorn phone_agent.main:app --reload --host 0.0.0.0 --port 8000

    # Production (single worker: one run at a time)
    uvicorn phone_agent.main:app --host 0.0.0.0 --port 8000
"""

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from phone_agent import __version__
from phone_agent.api.dependencies import get_gateway, get_memory
from phone_agent.api.routes import agent_router, health_router, heartbeat_router, memory_router
from phone_agent.config import get_settings
from phone_agent.utils.logger import get_logger, setup_logging

# Setup logging
settings = get_settings()
setup_logging()

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    logger.info(
        "Starting Phone Agent",
        version=__version__,
        environment=settings.server.environment,
        model=settings.llm.llm_model,
    )

    yield

    logger.info("Shutting down Phone Agent")
    await get_gateway().close()
    get_memory().close()


# Create FastAPI application
app = FastAPI(
    title="Phone Agent",
    description=(
        "Autonomous phone-control agent. Runs natural-language tasks on an "
        "Android device through a remote vision language model."
    ),
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.server.debug else None,
    redoc_url="/redoc" if settings.server.debug else None,
    openapi_url="/openapi.json" if settings.server.debug else None,
)


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.server.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests with timing."""
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", str(time.time()))

    logger.info(
        "Request started",
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        "Request completed",
        request_id=request_id,
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(duration_ms, 2),
    )

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

    return response


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions."""
    logger.exception(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc) if settings.server.debug else "An unexpected error occurred",
        },
    )


# Register routers
app.include_router(health_router)
app.include_router(agent_router)
app.include_router(memory_router)
app.include_router(heartbeat_router)


# Root endpoint
@app.get("/", include_in_schema=False)
async def root() -> dict[str, Any]:
    """Root endpoint with service information."""
    return {
        "service": "Phone Agent",
        "version": __version__,
        "docs": "/docs" if settings.server.debug else None,
        "health": "/health",
    }


# Run directly (for development)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "phone_agent.main:app",
        host=settings.server.server_host,
        port=settings.server.server_port,
        reload=settings.server.debug,
        log_level=settings.server.log_level.lower(),
    )
