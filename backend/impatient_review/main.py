"""
FastAPI application entry point for the impatient-review admin API.

This module initializes the FastAPI app with middleware, CORS, logging,
error handlers, and registers the API routers.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from slowapi.errors import RateLimitExceeded

from impatient_review.config import settings
from impatient_review.core.exceptions import AppError
from impatient_review.core.limiter import limiter
from impatient_review.database import init_db, get_db_context
from impatient_review.routers import admin
from impatient_review.services.session_service import DatabaseSessionStore

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    """
    # Startup
    logger.info("Initializing database...")
    init_db()
    if settings.SESSION_BACKEND == "database":
        with get_db_context() as db:
            purged = DatabaseSessionStore(db).purge_expired()
        logger.info(f"Purged {purged} expired sessions")
    logger.info("Database initialized successfully")

    yield

    # Shutdown
    logger.info("Shutting down application...")


# Create FastAPI app
app = FastAPI(
    title="Impatient Review Admin API",
    description="Admin accounts, sessions and passkey login",
    version="1.0.0",
    lifespan=lifespan,
)
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def custom_rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"detail": "Rate limit exceeded. Please try again later."},
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": "Internal Server Error"},
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Malformed request body"},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error"},
    )


# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(admin.router, prefix=f"{settings.API_PREFIX}/admin", tags=["admin"])


@app.get(settings.API_PREFIX)
async def root():
    """API info."""
    return {"service": "impatient-review", "status": "ok"}


@app.get(f"{settings.API_PREFIX}/healthz", response_class=PlainTextResponse)
async def health():
    """Health check endpoint."""
    return "ok"


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "impatient_review.main:app",
        host="127.0.0.1",
        port=4000,
        reload=True,
        log_level="info",
    )
