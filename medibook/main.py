import logging
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import ALLOWED_ORIGINS, SECURITY_HEADERS_ENABLED
from .database import Base, engine, get_db
from .domain.appointments.router import router as appointments_router
from .domain.doctors.router import router as doctors_router
from .domain.messages.router import router as messages_router
from .domain.timeslots.router import router as timeslots_router
from .domain.users.router import auth_router
from .domain.users.router import router as users_router
from .rate_limiter import get_redis_client
from .security_headers import SecurityHeadersMiddleware

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("passlib").setLevel(logging.ERROR)


def create_tables() -> None:
    """Create missing tables; a concurrent worker creating them first is not an error"""
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
    except SQLAlchemyError as e:
        if "already exists" not in str(e):
            logger.error(f"❌ Failed to create database tables: {e}")
            raise
        logger.info("Database tables already exist (created by another worker)")
    else:
        logger.info("✅ Database tables ready")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 MediBook API starting...")
    create_tables()

    # get_redis_client never raises; None means counters stay in this process
    if get_redis_client() is not None:
        logger.info("Redis connected - rate limit counters shared across workers")
    else:
        logger.info("Redis not configured - rate limit counters kept in memory")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="MediBook API", version="1.0.0", lifespan=lifespan)


def _error_field(loc) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report every failing field at once as {field, message} pairs"""
    errors = [
        {"field": _error_field(error.get("loc", ())), "message": error.get("msg", "Invalid value")}
        for error in exc.errors()
    ]
    logger.warning(f"Validation error for {request.url.path}: {errors}")
    return JSONResponse(status_code=422, content={"detail": "Validation failed", "errors": errors})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "An unexpected error occurred"})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise

    elapsed_ms = (time.time() - start_time) * 1000
    logger.info(f"{request.method} {request.url.path} - {response.status_code} ({elapsed_ms:.1f}ms)")
    return response


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(
        SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"]
    )
    logger.info("Security headers enabled")
else:
    logger.warning("Security headers DISABLED - only use in development!")


logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=False,  # bearer tokens only, no cookies
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

# Routes
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(doctors_router)
app.include_router(timeslots_router)
app.include_router(appointments_router)
app.include_router(messages_router)


@app.get("/")
def root():
    return {"message": "MediBook API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/health/db")
def database_health_check(db: Session = Depends(get_db)):
    """Check database connectivity for monitoring"""
    try:
        start_time = time.time()
        db.execute(text("SELECT 1"))
        response_time = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "database": {"connected": True, "response_time_ms": round(response_time, 2)},
        }
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "database": {"connected": False}},
        )
