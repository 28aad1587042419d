"""FastAPI application entry point"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from prometheus_fastapi_instrumentator import Instrumentator

from app.api import auth, health, profile
from app.api.deps import optional_user_id
from app.config import settings
from app.database import Base, SessionLocal, engine
from app.middleware.monitoring import MonitoringMiddleware
from app.middleware.rate_limit import limiter
from app.services.errors import ServiceError
from app.services.sweeper import RetentionSweeper
from app.utils.logger import logger, setup_logging

# Setup logging
setup_logging(settings.LOG_LEVEL)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    # Startup
    logger.info(
        f"GlobeTrotter auth service starting up (jwt={settings.JWT_ALGORITHM}, "
        f"rate_limiting={settings.RATE_LIMIT_ENABLED}, metrics={settings.METRICS_ENABLED}, "
        f"sweeper={settings.SWEEPER_ENABLED})",
        extra={"action": "startup"},
    )

    # Local SQLite files are created on the fly; other databases are migrated with alembic
    if settings.is_sqlite:
        Base.metadata.create_all(bind=engine)

    sweeper: Optional[RetentionSweeper] = None
    if settings.SWEEPER_ENABLED:
        sweeper = RetentionSweeper(SessionLocal, settings.SWEEPER_INTERVAL_SECONDS)
        sweeper.start()

    yield

    # Shutdown
    if sweeper is not None:
        await sweeper.stop()
    logger.info("GlobeTrotter auth service shutting down", extra={"action": "shutdown"})


# Create FastAPI app
app = FastAPI(
    title="GlobeTrotter Auth",
    description="Accounts, sessions and access tokens for the GlobeTrotter travel planner",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# ===== Middleware Setup =====

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Monitoring middleware
if settings.METRICS_ENABLED:
    app.add_middleware(MonitoringMiddleware)

    # Prometheus metrics
    instrumentator = Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=[settings.METRICS_PATH, "/health", "/health/ready", "/health/live"],
        inprogress_name="globetrotter_requests_inprogress",
        inprogress_labels=True
    )
    instrumentator.instrument(app)
    instrumentator.expose(app, endpoint=settings.METRICS_PATH, include_in_schema=False)

# Rate limiting (the limiter itself honours RATE_LIMIT_ENABLED)
app.state.limiter = limiter

# ===== Route Setup =====

# Include routers
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(profile.router)


@app.get("/")
def root(user_id: Optional[str] = Depends(optional_user_id)):
    """Root endpoint. Works with or without a token."""
    return {
        "service": "GlobeTrotter",
        "version": VERSION,
        "status": "operational",
        "authenticated": user_id is not None,
        "user_id": user_id,
        "docs": "/docs",
        "health": "/health",
        "metrics": settings.METRICS_PATH if settings.METRICS_ENABLED else None
    }


# ===== Error Handlers =====

def _error_response(status_code: int, kind: str, code: str, message: str, details=None) -> JSONResponse:
    content = {"error": kind, "code": code, "message": message}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Handle rate limit exceeded errors"""
    logger.warning(
        "Rate limit exceeded",
        extra={
            "path": request.url.path,
            "method": request.method,
            "client": request.client.host if request.client else "unknown"
        }
    )
    return _error_response(
        429,
        "rate_limited",
        "RATE_LIMITED",
        "Too many attempts. Please try again later.",
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    """Map service errors onto the {error, code, message} envelope"""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        exc.message,
        extra={
            "path": request.url.path,
            "method": request.method,
            "status": exc.status_code,
            "error": exc.code,
        }
    )
    return _error_response(exc.status_code, exc.kind, exc.code, exc.message, exc.details)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies are 400 VALIDATION_ERROR, not FastAPI's default 422"""
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        details.append({
            "field": ".".join(loc),
            "message": err.get("msg", "").removeprefix("Value error, "),
        })

    message = details[0]["message"] if details else "Invalid request"
    if details and details[0]["field"]:
        message = f"{details[0]['field']}: {message}"
    return _error_response(400, "validation_error", "VALIDATION_ERROR", message, {"errors": details})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for uncaught errors"""
    logger.error(
        f"Unhandled exception: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method
        },
        exc_info=True
    )
    return _error_response(
        500,
        "internal_error",
        "INTERNAL_ERROR",
        "An unexpected error occurred. Please try again later.",
    )
