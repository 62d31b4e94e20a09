from contextlib import asynccontextmanager
import asyncio
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from storefront.config import settings
from storefront.database import SessionLocal
from storefront.api.v1 import auth, products, cart, checkout, analytics
from storefront.api.v1 import admin_auth, admin_analytics
from storefront.middleware import ActivityTrackerMiddleware, AuthContextMiddleware
from storefront.tracking.queue import BackgroundJobQueue
from storefront.tracking.service import purge_inactive_sessions
import logging

# Configure logging
if not settings.DEBUG:
    from storefront.utils.logging_config import root_logger
    logger = logging.getLogger(__name__)
else:
    logger = logging.getLogger(__name__)

# Determine docs URLs based on environment
docs_url = "/docs" if settings.DEBUG else None
redoc_url = "/redoc" if settings.DEBUG else None


async def purge_loop(app: FastAPI):
    """Periodically drop online users idle for longer than the TTL"""
    while True:
        await asyncio.sleep(settings.TRACKING_PURGE_INTERVAL_SECONDS)
        app.state.job_queue.submit(purge_inactive_sessions, app.state.session_factory)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not getattr(app.state, "session_factory", None):
        app.state.session_factory = SessionLocal
    app.state.job_queue = BackgroundJobQueue(maxsize=settings.TRACKING_QUEUE_SIZE)
    await app.state.job_queue.start()
    
    app.state.purge_task = None
    if settings.TRACKING_ENABLED and settings.TRACKING_PURGE_INTERVAL_SECONDS > 0:
        app.state.purge_task = asyncio.create_task(purge_loop(app))
    
    logger.info(f"{settings.APP_NAME} started (tracking {'on' if settings.TRACKING_ENABLED else 'off'})")
    try:
        yield
    finally:
        purge_task = app.state.purge_task
        if purge_task:
            purge_task.cancel()
            try:
                await purge_task
            except asyncio.CancelledError:
                pass
        await app.state.job_queue.stop()
        logger.info(f"{settings.APP_NAME} stopped")


app = FastAPI(
    title=settings.APP_NAME,
    description="Storefront API with online user and activity tracking",
    version=settings.APP_VERSION,
    docs_url=docs_url,
    redoc_url=redoc_url,
    openapi_url="/openapi.json" if settings.DEBUG else None,
    lifespan=lifespan
)

# Tracking needs the principal, so the auth context middleware wraps it (last added runs first)
app.add_middleware(ActivityTrackerMiddleware)
app.add_middleware(AuthContextMiddleware)

# CORS Middleware
if settings.ENVIRONMENT == "production":
    # In production, use specific origins
    origins = settings.ALLOWED_ORIGINS.split(",") if settings.ALLOWED_ORIGINS else []
    if not origins:
        logger.warning("No ALLOWED_ORIGINS set in production!")
else:
    # In development, allow all
    origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


# Exception Handlers
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors"""
    # Convert errors to JSON-serializable format
    def sanitize_error(error):
        """Convert error dict to JSON-serializable format"""
        if isinstance(error, dict):
            return {k: sanitize_error(v) for k, v in error.items()}
        elif isinstance(error, list):
            return [sanitize_error(item) for item in error]
        elif isinstance(error, bytes):
            return error.decode('utf-8', errors='replace')
        elif isinstance(error, (str, int, float, bool, type(None))):
            return error
        else:
            return str(error)
    
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "message": "Validation error",
            "error": {
                "code": "VALIDATION_ERROR",
                "details": sanitize_error(exc.errors())
            }
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "message": "Internal server error",
            "error": {
                "code": "SERVER_ERROR",
                "details": str(exc) if settings.DEBUG else "An error occurred"
            }
        }
    )


# Include Routers
app.include_router(auth.router, prefix="/api/customers", tags=["Customers"])
app.include_router(products.router, prefix="/api/products", tags=["Products"])
app.include_router(cart.router, prefix="/api/cart", tags=["Cart"])
app.include_router(checkout.router, prefix="/api/checkout", tags=["Checkout"])
app.include_router(analytics.router, prefix="/api/analytics", tags=["Analytics"])

# Admin Routers
app.include_router(admin_auth.router, prefix="/api/admin/auth", tags=["Admin Authentication"])
app.include_router(admin_analytics.router, prefix="/api/admin/analytics", tags=["Admin Analytics"])


@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": f"{settings.APP_NAME} is running",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": settings.APP_NAME
    }
