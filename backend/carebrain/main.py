"""
Main FastAPI application entry point
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException as FastAPIHTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from carebrain import __version__
from carebrain.api.routes import care_sessions, health
from carebrain.core.backend import close_brain_transport
from carebrain.core.config import get_settings
from carebrain.core.logging_config import LoggingConfig
from carebrain.core.middleware import LoggingContextMiddleware
from carebrain.services.care_session import get_session_registry

# Configure logging first
LoggingConfig.configure()

logger = LoggingConfig.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for FastAPI app"""
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} in {settings.app_env} mode (brain: {settings.brain_backend})")

    yield

    logger.info(f"Shutting down {settings.app_name}...")
    await get_session_registry().close_all()
    await close_brain_transport()


_settings = get_settings()
app = FastAPI(
    title=_settings.app_name,
    description="Care and emergency action dispatch for the care brain",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(LoggingContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler to log all unhandled errors"""
    if isinstance(exc, FastAPIHTTPException):
        raise exc

    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={
            "error": str(exc),
            "error_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        }
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": str(exc),
            "type": type(exc).__name__,
        }
    )


app.include_router(health.router)
app.include_router(care_sessions.router)


@app.get("/api")
async def root():
    """Root API endpoint"""
    settings = get_settings()
    return {
        "name": settings.app_name,
        "version": __version__,
        "status": "running",
        "environment": settings.app_env,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "carebrain.main:app",
        host=_settings.api_host,
        port=_settings.api_port,
        reload=_settings.app_env == "development",
    )
