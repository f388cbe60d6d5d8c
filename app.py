from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Import logging system
from core.logging import setup_logging, get_logger, app_logger
from core.config import settings
from core.exceptions import setup_exception_handlers
from core.middleware import setup_middleware
from db_config import create_all_tables

# Import routers
from routers import auth, users, categories, documents, activity, ai_functions, storage, health

# Initialize logging system early
setup_logging()
logger = get_logger("fastapi")

# Create FastAPI app instance
app = FastAPI(
    title=settings.app_name,
    description="Backend API for EduKeeper: documents, categories, AI study material, XP and subscriptions",
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Setup global exception handlers
setup_exception_handlers(app)

middleware_config = {
    "enable_security_headers": settings.enable_security_headers,
    "enable_request_logging": settings.enable_request_logging,
    "enable_size_limit": settings.enable_request_size_limit,
    "max_request_size": settings.max_request_size_bytes,
}
setup_middleware(app, middleware_config)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(categories.router)
app.include_router(documents.router)
app.include_router(activity.history_router)
app.include_router(activity.xp_router)
app.include_router(activity.teacher_router)
app.include_router(ai_functions.router)
app.include_router(storage.router)
app.include_router(storage.subscriptions_router)
app.include_router(health.router)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Basic health check endpoint to verify the API is running.
    """
    return {"status": "ok", "message": f"{settings.app_name} is running"}


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint providing basic API information.
    """
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
        "health_checks": {
            "basic": "/health",
            "detailed": "/health/detailed",
            "database": "/health/database",
            "system": "/health/system"
        }
    }


# Application lifecycle events
@app.on_event("startup")
async def startup_event():
    """Handle application startup."""
    app_logger.info("FastAPI application starting up", phase="startup")
    if settings.auto_create_tables:
        await create_all_tables()


@app.on_event("shutdown")
async def shutdown_event():
    """Handle application shutdown."""
    app_logger.info("FastAPI application shutting down", phase="shutdown")
