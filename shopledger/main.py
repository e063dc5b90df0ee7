"""
Shop Ledger FastAPI Main Application
Entry point for the sale balance and recovery ledger REST API
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from shopledger.core.config import settings
from shopledger.core.database import check_db_connection, init_db
from shopledger.core.exceptions import (
    ShopLedgerException, ValidationError, NotFoundError, ConflictError, InternalError
)
from shopledger.core.logging import setup_logging, get_logger
from shopledger.api.v1.api_router import api_router
from shopledger.schemas.common import HealthResponse

logger = get_logger("api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application startup and shutdown

    Verifies the database and creates missing tables before serving.
    """
    setup_logging()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    if not check_db_connection():
        logger.error("Failed to connect to database on startup")
        raise RuntimeError("Database connection failed")

    logger.info("Database connection established")
    init_db()
    logger.info("Application startup completed successfully")

    yield

    logger.info("Shutting down application")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
    ## Shop Ledger API

    Sale capture and payment recovery for a single store.

    ### Key Features:
    - **Sales**: sale entry with discount, tax and profit calculation
    - **Recoveries**: partial payments recorded against a sale's outstanding balance
    - **Ledger Views**: outstanding, overdue and fully paid sales, customer and dashboard summaries
    - **Legacy Sales**: backfill of sales recorded before recovery tracking
    """,
    docs_url=settings.DOCS_URL,
    redoc_url=settings.REDOC_URL,
    openapi_url=settings.OPENAPI_URL,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add trusted host middleware for production
if not settings.DEBUG:
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.ALLOWED_HOSTS
    )


# Health check endpoint
@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check():
    """
    Health check endpoint for monitoring and load balancers

    Returns system status and database connectivity
    """
    try:
        db_status = check_db_connection()

        return {
            "status": "healthy" if db_status else "degraded",
            "version": settings.APP_VERSION,
            "database": "connected" if db_status else "disconnected",
            "debug": settings.DEBUG
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=503, detail="Service unavailable")


# System information endpoint
@app.get("/info", tags=["System"])
async def system_info():
    """Application configuration and business settings"""
    return {
        "application": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "description": "Sale balance and recovery ledger",
        "api_version": "v1",
        "docs_url": settings.DOCS_URL,
        "business_settings": {
            "default_due_days": settings.DEFAULT_DUE_DAYS,
            "sale_number_prefix": settings.SALE_NUMBER_PREFIX,
            "currency_decimal_places": settings.CURRENCY_DECIMAL_PLACES,
        }
    }


# Ledger exception handlers
_STATUS_BY_EXCEPTION = (
    (ValidationError, 400, "validation_error"),
    (NotFoundError, 404, "not_found"),
    (ConflictError, 409, "conflict"),
    (InternalError, 500, "internal_error"),
)


@app.exception_handler(ShopLedgerException)
async def ledger_exception_handler(request: Request, exc: ShopLedgerException):
    """Map ledger exceptions to HTTP responses"""
    for exc_type, status_code, error in _STATUS_BY_EXCEPTION:
        if isinstance(exc, exc_type):
            break
    else:
        status_code, error = 500, "internal_error"

    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        detail = str(exc) if settings.DEBUG else "The operation failed and was rolled back"
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({status_code}): {exc}")
        detail = str(exc)

    return JSONResponse(
        status_code=status_code,
        content={"error": error, "detail": detail, "type": type(exc).__name__}
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """
    Global exception handler for unhandled errors

    Args:
        request: FastAPI request object
        exc: Exception that occurred

    Returns:
        JSON error response
    """
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc) if settings.DEBUG else "An unexpected error occurred",
            "type": "server_error"
        }
    )


# Include API routers
app.include_router(api_router, prefix=settings.API_V1_STR)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "shopledger.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
