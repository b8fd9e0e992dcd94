from contextlib import asynccontextmanager
from datetime import datetime, timezone
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import text
from slowapi.errors import RateLimitExceeded
import logging

from app.core.config import settings
from app.core.database import engine
from app.core.exceptions import DashboardException, ErrorCode, RateLimitExceededError
from app.core.log_sanitizer import configure_logging
from app.core.rate_limit import limiter
from app.core.middleware import SecurityHeadersMiddleware, RequestValidationMiddleware, CSRFMiddleware
from app.api import auth_router, users_router

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

IS_PRODUCTION = settings.is_production


def run_migrations():
    """Run database migrations on startup."""
    try:
        from alembic.config import Config
        from alembic import command

        logger.info("Running database migrations...")
        alembic_cfg = Config("alembic.ini")
        command.upgrade(alembic_cfg, "head")
        logger.info("Database migrations completed successfully")
    except Exception as e:
        # Startup continues; the schema may already be current
        logger.error(f"Failed to run migrations: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting Survey Dashboard API...")

    errors = settings.validate_required_secrets()
    if errors:
        for error in errors:
            logger.error(f"Configuration error: {error}")
        if IS_PRODUCTION:
            raise RuntimeError("Invalid configuration: " + "; ".join(errors))

    if IS_PRODUCTION:
        run_migrations()

    # Periodic cleanup of expired refresh and reset tokens
    from app.core.scheduler import start_scheduler, shutdown_scheduler
    start_scheduler()

    logger.info("Survey Dashboard API started successfully")
    yield
    shutdown_scheduler()
    logger.info("Shutting down Survey Dashboard API...")


app = FastAPI(
    title="Survey Dashboard API",
    description="Authentication and session management for the survey dashboard",
    version="1.0.0",
    lifespan=lifespan,
    # Disable docs in production
    docs_url=None if IS_PRODUCTION else "/docs",
    redoc_url=None if IS_PRODUCTION else "/redoc",
)

app.state.limiter = limiter


# Exception handlers
@app.exception_handler(DashboardException)
async def dashboard_exception_handler(request: Request, exc: DashboardException):
    """Handle custom API exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "error_code": exc.error_code.value,
        },
        headers=exc.headers,
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded):
    """Report slowapi limits in the same shape as every other error."""
    logger.warning(f"Rate limit exceeded for {request.url.path}: {exc.detail}")
    error = RateLimitExceededError()
    return JSONResponse(
        status_code=error.status_code,
        content={
            "detail": error.detail,
            "error_code": error.error_code.value,
        },
    )


@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    """Handle database errors."""
    logger.error(f"Database error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "A database error occurred",
            "error_code": "DATABASE_ERROR",
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors."""
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected error occurred",
            "error_code": ErrorCode.INTERNAL_ERROR.value,
        },
    )

# Security middleware (order matters - first added = last executed)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestValidationMiddleware)
app.add_middleware(CSRFMiddleware)

allowed_origins = [settings.FRONTEND_URL]
if not IS_PRODUCTION:
    # Allow localhost variations in development
    allowed_origins.extend([
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
    ])

# Credentials are allowed so the browser sends the refresh cookie
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "Accept",
        "Origin",
        "X-Requested-With",
        settings.CSRF_HEADER_NAME,
    ],
    max_age=600,  # Cache preflight requests for 10 minutes
)

# Include routers
app.include_router(auth_router, prefix="/api")
app.include_router(users_router, prefix="/api")


@app.get("/")
def root():
    return {"message": "Welcome to the Survey Dashboard API"}


@app.get("/health")
def health_check():
    """Health check endpoint for load balancers and monitoring."""
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": "1.0.0",
    }

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        health_status["database"] = "connected"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["status"] = "unhealthy"
        health_status["database"] = "disconnected"

    return health_status
