from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from gradebook.core.config import settings, validate_settings
from gradebook.core.logging_config import setup_logging, get_logger
from gradebook.core.exceptions import (
    GradeBookException,
    ConfigurationError,
    AuthenticationError,
    AuthorizationError,
    DatabaseError,
    NotFoundError,
    sanitize_error_message
)
from gradebook.api.v1.router import api_router
from gradebook.core.maintenance import MAINTENANCE_TABLE
from gradebook.core.supabase import get_db

# Setup logging first (before settings validation)
setup_logging()
logger = get_logger(__name__)

APP_DEBUG = bool(settings and settings.DEBUG)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    try:
        logger.info("Validating configuration...")
        validate_settings()
        logger.info("Configuration validated successfully")
        logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
        logger.info(f"Debug mode: {'ON' if settings.DEBUG else 'OFF'}")
        logger.info(f"Frontend URL: {settings.FRONTEND_URL}")
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e.message}")
        logger.error("Application startup failed due to configuration issues.")
        raise

    yield

    # Shutdown
    logger.info("Shutting down application")


app = FastAPI(
    title=settings.APP_NAME if settings else "GradeBook",
    version=settings.APP_VERSION if settings else "1.0.0",
    description="GradeBook maintenance announcements and maintenance mode API",
    lifespan=lifespan,
    docs_url="/api/docs" if APP_DEBUG else None,
    redoc_url="/api/redoc" if APP_DEBUG else None,
    openapi_url="/api/openapi.json" if APP_DEBUG else None,
)


def _status_code_for(exc: GradeBookException) -> int:
    if isinstance(exc, AuthenticationError):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(exc, AuthorizationError):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, (DatabaseError, ConfigurationError)):
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    return status.HTTP_400_BAD_REQUEST


@app.exception_handler(GradeBookException)
async def custom_exception_handler(request: Request, exc: GradeBookException):
    """Handle custom application exceptions."""
    status_code = _status_code_for(exc)
    log = logger.error if status_code >= 500 else logger.warning
    log(
        f"Application error: {exc.message}",
        extra={
            "error_code": exc.error_code,
            "details": exc.details,
            "path": str(request.url),
            "method": request.method,
        }
    )

    return JSONResponse(
        status_code=status_code,
        content={
            "error": True,
            "message": exc.message,
            "error_code": exc.error_code,
            "details": exc.details if APP_DEBUG else None,
        }
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Report malformed request bodies as 400 with a readable message."""
    errors = exc.errors()
    messages = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "Invalid value").removeprefix("Value error, ")
        messages.append(f"{location}: {message}" if location else message)

    logger.warning(f"Validation failed for {request.method} {request.url.path}: {messages}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": True,
            "message": "; ".join(messages) or "Invalid request",
            "error_code": "VALIDATION_ERROR",
            "details": {"errors": [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors]}
            if APP_DEBUG else None,
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle all other exceptions."""
    logger.exception(
        f"Unhandled exception: {type(exc).__name__}",
        extra={
            "path": str(request.url),
            "method": request.method,
        }
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": True,
            "message": sanitize_error_message(exc),
            "error_code": "INTERNAL_ERROR",
            "details": {
                "type": type(exc).__name__,
                "message": str(exc),
            } if APP_DEBUG else None,
        }
    )


# CORS Configuration
allowed_origins = [
    settings.FRONTEND_URL if settings else "http://localhost:3000",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
allowed_origins = list(dict.fromkeys(allowed_origins))

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins if not APP_DEBUG else ["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.get("/")
async def root():
    return {
        "message": f"Welcome to {app.title}",
        "version": app.version,
        "docs": "/api/docs",
    }


@app.get("/health")
async def health_check(db=Depends(get_db)):
    """Health check including store connectivity."""
    health_status = {
        "status": "healthy",
        "service": app.title,
        "version": app.version,
    }

    try:
        db.table(MAINTENANCE_TABLE).select("id").limit(1).execute()
        health_status["database"] = "connected"
    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}")
        health_status["database"] = "disconnected"
        health_status["status"] = "degraded"

    status_code = status.HTTP_200_OK if health_status["status"] == "healthy" else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(content=health_status, status_code=status_code)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=settings.PORT if settings else 8000)
