"""
Main FastAPI application for the Klima map API.

This module contains the FastAPI application instance, the error handlers
mapping the climate error taxonomy to HTTP responses, and the root endpoints.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from klima.config import settings
from klima.core.errors import DataSourceError, InvalidRequestError, KlimaError, NotFoundError
from klima.crud.metadata import ClimateMetadataResolver
from klima.database import engine
from klima.routers.climate import router as climate_router
from klima.routers.layers import router as layers_router
from klima.utils.cache import cache
from klima.utils.logging_config import setup_logging, get_logger

# Initialize logging
setup_logging()
logger = get_logger(__name__)

# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Handles startup and shutdown events. The database is read-only for this
    service; its schema is maintained by the data loading process.
    """
    # Startup
    logger.info("=" * 60)
    logger.info("Klima Map API - Application starting up")
    logger.info(f"Environment: {'Development' if settings.DEBUG else 'Production'}")
    logger.info(f"API Prefix: {settings.API_PREFIX}")
    logger.info(f"Database: {settings.SQLALCHEMY_DATABASE_URI.split('://')[0]}")
    logger.info(f"Redis cache: {'enabled' if cache.enabled else 'disabled'}")
    logger.info("=" * 60)

    yield

    # Shutdown
    logger.info("=" * 60)
    logger.info("Klima Map API - Application shutting down")
    logger.info("=" * 60)
    await engine.dispose()


app = FastAPI(
    title="Klima Map API",
    description="GeoJSON climate and administrative layers over PostGIS",
    version=settings.VERSION,
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Metadata snapshot shared read-only between requests
app.state.metadata_resolver = ClimateMetadataResolver()

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# Domain errors raised by the query layer and the HTTP status each maps to.
# Subclasses (UnsupportedCombinationError) inherit their parent's status.
ERROR_STATUS = {
    InvalidRequestError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    DataSourceError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(exc: KlimaError) -> int:
    for error_type, code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(KlimaError)
async def klima_exception_handler(request: Request, exc: KlimaError):
    """
    Map domain errors to JSON error responses.

    Data source failures get an opaque message; the diagnostic detail only
    goes to the error log.
    """
    code = status_for(exc)
    if code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.detail}")
        detail = DataSourceError.public_detail
    else:
        logger.info(f"{code} on {request.url.path}: {exc.detail}")
        detail = exc.detail
    return JSONResponse(status_code=code, content={"detail": detail, "status_code": code})


# Set up CORS
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )


@app.get("/")
@limiter.limit(f"{settings.RATE_LIMIT_REQUESTS}/{settings.RATE_LIMIT_WINDOW}seconds")
async def root(request: Request):
    """
    Root endpoint returning API information.
    """
    return {
        "message": "Welcome to Klima Map API",
        "version": settings.VERSION,
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
@limiter.limit("60/minute")  # More generous limit for health checks
async def health_check(request: Request):
    """
    Health check endpoint.

    Rate limit: 60 requests per minute
    """
    return {
        "status": "healthy",
        "metadata_loaded": app.state.metadata_resolver.is_loaded,
        "cache": cache.health_check(),
    }


# Include routers
app.include_router(layers_router, prefix=settings.API_PREFIX)
app.include_router(climate_router, prefix=settings.API_PREFIX)
