# classhub/main.py
# Class Measures Hub API: students, programs, sessions, attendance, resources

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import time

from .config.settings import settings
from .config.database import connect_to_mongo, close_mongo_connection, create_indexes
from .routers import auth, students, programs, sessions, attendance, resources, analytics
from .services.user_service import user_service


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info(f"🚀 Starting {settings.app_name}...")
    await connect_to_mongo()

    try:
        await create_indexes()
    except Exception as e:
        logger.error(f"❌ Failed to create indexes: {e}")
        logger.warning("⚠️ Continuing without guaranteed indexes")

    # Bootstrap admin from .env
    try:
        await user_service.ensure_default_admin()
    except Exception as e:
        logger.error(f"❌ Failed to create default admin: {e}")

    logger.info("=" * 60)
    logger.info("✅ APPLICATION STARTUP COMPLETE")
    logger.info("=" * 60)

    yield

    # Shutdown
    logger.info(f"🛑 Shutting down {settings.app_name}...")
    await close_mongo_connection()
    logger.info("✅ Application shutdown complete")


# ============================================================================
# FASTAPI APPLICATION
# ============================================================================

app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="Class Measures Hub - student records, programs, sessions, attendance and resources for a tutoring company",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
)

# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time to response headers"""
    start_time = time.time()
    try:
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        return response
    except Exception as e:
        logger.error(f"Request failed: {request.method} {request.url} - Error: {str(e)}", exc_info=True)
        raise

@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "message": f"{settings.app_name} is running",
        "version": settings.version,
        "modules": [
            "auth", "students", "programs", "sessions",
            "attendance", "resources", "analytics"
        ]
    }

@app.get("/")
async def root():
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.version,
        "docs": "/docs" if settings.debug else "Docs disabled in production",
        "endpoints": {
            "auth": "/auth",
            "students": "/students",
            "programs": "/programs",
            "sessions": "/sessions",
            "attendance": "/attendance",
            "resources": "/resources",
            "analytics": "/analytics",
            "health": "/health"
        }
    }

app.include_router(auth.router)
app.include_router(students.router)
app.include_router(programs.router)
app.include_router(sessions.router)
app.include_router(attendance.router)
app.include_router(resources.router)
app.include_router(analytics.router)
