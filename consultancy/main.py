"""
Main Application Entry Point
============================

Responsibilities:
- Initialize FastAPI application
- Configure middleware stack
- Register API routers
- Set up exception handlers
- Provide health check endpoints
- Configure CORS

IMPORTANT:
    Database tables are managed via Alembic migrations.
    Do NOT use Base.metadata.create_all() in production.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from consultancy.core.config import settings
from consultancy.core.exceptions import AuthenticationError, ConsultancyException
from consultancy.core.logging import configure_logging, get_logger
from consultancy.db.session import check_database_connection

# Import routers
from consultancy.routes import admin_routes, auth_routes

# Import middleware
from consultancy.middleware.request_middleware import (
    RateLimitMiddleware,
    RequestContextMiddleware,
    SecurityHeadersMiddleware,
)

configure_logging()

# Initialize logger
logger = get_logger(__name__)


# =====================================
# Application Lifespan Handler
# =====================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler for startup and shutdown events.

    Startup:
    - Refuse insecure production configuration
    - Check database connection

    Shutdown:
    - Log application shutdown
    """
    settings.validate_for_production()

    logger.info(
        "application_starting",
        app_name=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    if not check_database_connection():
        logger.error("database_unavailable_on_startup")
    else:
        logger.info("database_connection_established")

    try:
        yield
    finally:
        logger.info("application_shutdown_complete")


# =====================================
# FastAPI App Initialization
# =====================================

app = FastAPI(
    title=settings.APP_NAME,
    description="""
    Consultancy CMS - User Administration Backend

    ## Authentication

    Use the `/auth/login` endpoint to obtain access and refresh tokens.
    Include the access token in the `Authorization` header as `Bearer <token>`.

    ## Authorization

    Roles (in order of increasing privilege):
    * `VIEWER`: Read published content
    * `CONTRIBUTOR`: Submit content for review
    * `AUTHOR`: Create and edit own content
    * `EDITOR`: Edit and publish all content
    * `ADMIN`: Manage content and lower-ranked users
    * `SUPER_ADMIN`: Full system administration

    An administrator may only manage accounts strictly below their own
    role, and the last active administrator can never be removed.
    """,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
)


# =====================================
# CORS Configuration
# =====================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.cors_methods_list,
    allow_headers=settings.cors_headers_list,
    max_age=3600,  # Cache preflight requests for 1 hour
)


# =====================================
# Custom Middleware
# =====================================

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestContextMiddleware)


# =====================================
# Exception Handlers
# =====================================

@app.exception_handler(ConsultancyException)
async def consultancy_exception_handler(request: Request, exc: ConsultancyException):
    """Render application exceptions as ``{"message", "details"}``."""
    logger.warning(
        "application_exception",
        exception_type=type(exc).__name__,
        message=exc.message,
        status_code=exc.status_code,
        path=request.url.path,
    )

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "message": exc.message,
            "details": exc.details,
        },
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handle request validation errors.

    Provides detailed error messages for invalid requests.
    """
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    logger.warning("request_validation_error", path=request.url.path, errors=errors)

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "message": "Validation error",
            "details": {"errors": errors},
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """
    Handle unexpected exceptions.

    Logs the error and returns a generic error message.
    """
    logger.error(
        "unhandled_exception",
        exception_type=type(exc).__name__,
        message=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )

    # Don't expose internal errors in production
    if settings.ENVIRONMENT == "production":
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "message": "An unexpected error occurred",
                "details": {},
            },
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "message": str(exc),
            "details": {"type": type(exc).__name__},
        },
    )


# =====================================
# Register Routers
# =====================================

app.include_router(auth_routes.router)
app.include_router(admin_routes.router)


# =====================================
# Health Check Endpoints
# =====================================

@app.get(
    "/",
    tags=["Health"],
    summary="Basic Health Check",
    description="Returns basic service status information.",
)
def health_check():
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@app.get(
    "/health",
    tags=["Health"],
    summary="Detailed Health Check",
    description="Returns detailed health status including database connectivity.",
)
def detailed_health_check():
    db_healthy = check_database_connection()

    return {
        "status": "healthy" if db_healthy else "degraded",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "checks": {
            "database": "healthy" if db_healthy else "unhealthy",
        },
    }


@app.get(
    "/ready",
    tags=["Health"],
    summary="Readiness Check",
    description="Returns whether the service is ready to accept requests.",
)
def readiness_check():
    """
    Readiness check for container orchestration.

    Returns:
        200 if ready, 503 if not ready
    """
    if not check_database_connection():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "database_unavailable",
            },
        )

    return {"status": "ready"}
