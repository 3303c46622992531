from contextlib import asynccontextmanager
from datetime import datetime
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import text
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
import logging

from app.core.config import settings
from app.core.database import engine, SessionLocal
from app.core.exceptions import SiteException
from app.core.rate_limit import limiter
from app.core.security import cleanup_expired_tokens
from app.core.middleware import AdminGateMiddleware, SecurityHeadersMiddleware
from app.api.routes.auth import router as auth_router
from app.api.routes.admin_posts import router as admin_posts_router
from app.api.routes.blog import router as blog_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


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
        # Startup continues, the schema may already be current
        logger.error(f"Failed to run migrations: {e}")


def purge_expired_tokens():
    """Drop expired blacklist, refresh and magic-link rows."""
    db = SessionLocal()
    try:
        removed = cleanup_expired_tokens(db)
        logger.info(f"Purged {removed} expired token rows")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to purge expired tokens: {e}")
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting blog API...")

    if settings.is_production:
        errors = settings.validate_required_secrets()
        if errors:
            for error in errors:
                logger.error(f"Configuration error: {error}")
            raise RuntimeError("Refusing to start with invalid production configuration")
        run_migrations()

    purge_expired_tokens()

    logger.info("Blog API started successfully")
    yield
    logger.info("Shutting down blog API...")


app = FastAPI(
    title="Blog API",
    description="Public blog and admin console for managing posts",
    version="1.0.0",
    lifespan=lifespan,
    # Disable docs in production
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
)

# Add rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# Exception handlers
@app.exception_handler(SiteException)
async def site_exception_handler(request: Request, exc: SiteException):
    """Handle custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "error_code": exc.error_code,
        },
        headers=exc.headers,
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
            "error_code": "INTERNAL_ERROR",
        },
    )

# Middleware order matters: last added runs first, so security headers wrap
# every response, including the gate's redirects and 404s.
app.add_middleware(AdminGateMiddleware)
app.add_middleware(SecurityHeadersMiddleware)

allowed_origins = [settings.FRONTEND_URL]
if not settings.is_production:
    allowed_origins.extend([
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ])

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "Accept",
        "Origin",
        "X-Requested-With",
    ],
    max_age=600,  # Cache preflight requests for 10 minutes
)

# Admin routes live at the root so the gate sees /admin paths as-is
app.include_router(auth_router)
app.include_router(admin_posts_router)
app.include_router(blog_router, prefix="/api")


@app.get("/")
def root():
    return {"message": "Welcome to the blog API"}


@app.get("/health")
def health_check():
    """Health check endpoint for load balancers and monitoring."""
    health_status = {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": "1.0.0",
    }

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        health_status["database"] = "connected"
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        health_status["status"] = "unhealthy"
        health_status["database"] = "disconnected"

    return health_status
