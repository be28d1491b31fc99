from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import time
import uuid
from contextlib import asynccontextmanager

from app.routers import moderation
from app.core.logger import logger, setup_logging
from app.core.exceptions import ContentModeratorException, EXCEPTION_STATUS_MAPPING
from app.core.config import settings

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management for startup and shutdown events."""
    setup_logging(level=settings.log_level, log_file=settings.log_file)
    logger.info(
        "Starting image moderation service",
        extra={"version": VERSION, "region": settings.aliyun_region}
    )

    yield

    logger.info("Shutting down image moderation service")
    if moderation.get_moderation_service.cache_info().currsize:
        moderation.get_moderation_service().close()


app = FastAPI(
    title=settings.app_name,
    description="""
    Checks the images embedded in user-submitted posts with the Aliyun
    content moderation API and applies a local risk-level allow-list.

    ## Error Handling

    Moderation itself fails open: when the remote service cannot classify
    an image the post is approved and the failure is logged. Other errors
    return structured JSON responses with:
    - `error_code`: Machine-readable error identifier
    - `message`: Human-readable error description
    - `details`: Additional error context
    """,
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)


# Request ID middleware
@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add unique request ID to all requests for tracing."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = str(process_time)

    logger.info(
        "Request completed",
        extra={
            "request_id": request_id,
            "method": request.method,
            "url": str(request.url),
            "status_code": response.status_code,
            "process_time": process_time
        }
    )

    return response


@app.exception_handler(ContentModeratorException)
async def content_moderator_exception_handler(request: Request, exc: ContentModeratorException):
    """Handle custom application exceptions."""
    logger.error(
        f"Content Moderator exception: {exc.message}",
        extra={
            "request_id": getattr(request.state, "request_id", "unknown"),
            "error_code": exc.error_code,
            "details": exc.details
        }
    )

    return JSONResponse(
        status_code=EXCEPTION_STATUS_MAPPING.get(exc.__class__, 500),
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details,
            "request_id": getattr(request.state, "request_id", "unknown")
        }
    )


app.include_router(moderation.router)


@app.get("/health", tags=["monitoring"])
async def health_check():
    """
    Health check endpoint for monitoring and load balancers.

    Returns:
        Health status and whether remote credentials are configured
    """
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": VERSION,
        "services": {
            "api": "healthy",
            "aliyun_credentials": (
                "configured"
                if settings.aliyun_access_key_id and settings.aliyun_access_key_secret
                else "missing"
            )
        }
    }
