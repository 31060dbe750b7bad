"""
Radio - Shared AI Music Radio
FastAPI backend for music generation, the shared room, reactions and playlists
"""

from contextlib import asynccontextmanager
from typing import Any, Dict

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.middleware import SessionMiddleware
from .api.routes import auth, music, pages, playlists, proxy, room, user
from .core.config import get_settings
from .core.errors import RadioError
from .core.logging import setup_logging
from .database.connection import baas_manager
from .services.enhance_service import enhance_service
from .services.media_service import media_service
from .services.music_provider import music_provider

# Global settings
settings = get_settings()

# Setup logging
logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events"""

    # Startup
    logger.info("Starting Radio backend server...")

    try:
        await baas_manager.initialize()
        logger.info(f"Backend client initialized: {settings.BAAS_URL}")

        await music_provider.initialize()
        await enhance_service.initialize()
        await media_service.initialize()
        if not settings.music_api_configured:
            logger.warning("MUSIC_API_KEY not set, generation requests will be rejected upstream")

        logger.info("Radio backend started successfully")

    except Exception as e:
        logger.error(f"Failed to start Radio backend: {e}")
        raise

    yield

    # Shutdown
    logger.info("Shutting down Radio backend...")

    try:
        await media_service.cleanup()
        await enhance_service.cleanup()
        await music_provider.cleanup()

        await baas_manager.close()
        logger.info("Backend client closed")

        logger.info("Radio backend shutdown complete")

    except Exception as e:
        logger.error(f"Error during shutdown: {e}")


# Create FastAPI application
app = FastAPI(
    title="Radio API",
    description="Shared AI music radio with generation, reactions and playlists",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan
)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(SessionMiddleware)


# Exception handlers
@app.exception_handler(RadioError)
async def radio_error_handler(request: Request, exc: RadioError):
    """Application errors carry their own status code"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and query parameters are client errors (400)"""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request body"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled exceptions"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "detail": str(exc)}
    )


# Health check endpoint
@app.get("/health")
async def health_check() -> Dict[str, Any]:
    """Health check endpoint"""
    baas_status = await baas_manager.check_health()

    content = {
        "status": "healthy" if baas_status else "unhealthy",
        "version": settings.APP_VERSION,
        "services": {
            "baas": "healthy" if baas_status else "unhealthy",
            "music_api": "configured" if settings.music_api_configured else "not_configured",
            "enhance": "configured" if settings.enhance_configured else "not_configured",
        }
    }
    if not baas_status:
        return JSONResponse(status_code=503, content=content)
    return content


# API Routes
app.include_router(music.router, prefix="/api/music", tags=["Music"])
app.include_router(room.router, prefix="/api/room", tags=["Room"])
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(user.router, prefix="/api/user", tags=["User"])
app.include_router(playlists.router, prefix="/api/playlists", tags=["Playlists"])
app.include_router(proxy.router, prefix="/api/proxy", tags=["Proxy"])

# Page data
app.include_router(pages.router, tags=["Pages"])


if __name__ == "__main__":
    # Development server
    uvicorn.run(
        "radio.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
        log_level="info"
    )
