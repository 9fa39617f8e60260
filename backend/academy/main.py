from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from academy.core.config import settings
from academy.core.database import init_db, close_db
from academy.core.exceptions import AcademyError, UpstreamError, error_response
from academy.core.logging_config import logger
from academy.core.middleware import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    RequestSizeLimitMiddleware,
)
from academy.core.rate_limiter import limiter, rate_limit_exceeded_handler
from academy.api.router import api_router


# Optional integrations: the matching endpoints answer 503 until configured
OPTIONAL_INTEGRATIONS = (
    (settings.razorpay_configured, "Razorpay keys not set, card checkout disabled"),
    (lambda: bool(settings.UPI_VPA), "UPI_VPA not set, manual UPI links will have no payee"),
    (settings.r2_configured, "Cloudflare R2 not configured, document uploads disabled"),
    (settings.cloudinary_configured, "Cloudinary not configured, video uploads disabled"),
)


async def validate_critical_config():
    """Fail fast on missing database or JWT settings; warn about optional integrations"""
    errors = []
    if not settings.DATABASE_URL:
        errors.append("DATABASE_URL is not set")
    if not settings.JWT_SECRET_KEY or settings.JWT_SECRET_KEY == "CHANGE_ME":
        errors.append("JWT_SECRET_KEY is not set or using default value")

    if errors:
        for err in errors:
            logger.critical(f"[Startup] {err}")
        raise RuntimeError(f"Missing critical configuration: {', '.join(errors)}")

    for configured, warning in OPTIONAL_INTEGRATIONS:
        if not configured():
            logger.warning(f"[Startup] {warning}")

    logger.info("[Startup] Critical configuration validated")
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.APP_NAME} v{settings.VERSION} ({settings.ENVIRONMENT})")

    await validate_critical_config()
    await init_db()
    logger.info("[Startup] Database tables ready")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}")
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    description="Course sales, payments and content delivery for the academy",
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    redirect_slashes=False,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Last added runs first
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)

# Video uploads are the largest bodies we accept
app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.MAX_VIDEO_SIZE)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Request-ID", "X-Response-Time"],
)


@app.exception_handler(AcademyError)
async def academy_exception_handler(request: Request, exc: AcademyError):
    if isinstance(exc, UpstreamError):
        logger.log_upstream_failure(exc.provider, request.url.path, exc.detail or exc.message)
    elif exc.status_code >= 500:
        logger.error(f"[API] {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error_response(exc))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "message": str(exc) if settings.DEBUG else "An error occurred"
        }
    )


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "app_name": settings.APP_NAME,
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT
    }


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME} API",
        "version": settings.VERSION,
        "docs": "/docs",
        "health": "/health"
    }


app.include_router(api_router, prefix=settings.API_PREFIX)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "academy.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.DEBUG
    )
