"""
Health check endpoints
"""
from datetime import datetime, timezone

from fastapi import APIRouter

from carebrain import __version__
from carebrain.core.backend import get_brain_transport
from carebrain.core.config import get_settings
from carebrain.core.logging_config import LoggingConfig
from carebrain.services.care_session import get_session_registry

logger = LoggingConfig.get_logger(__name__)
router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """
    Basic health check endpoint

    Returns:
        dict: Health status
    """
    settings = get_settings()
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": settings.app_name,
        "brain_backend": settings.brain_backend,
        "open_sessions": len(get_session_registry()),
    }


@router.get("/health/detailed")
async def detailed_health_check():
    """
    Detailed health check with component status

    Returns:
        dict: Detailed health status of the brain backend and logging
    """
    settings = get_settings()
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": settings.app_name,
        "version": __version__,
        "environment": settings.app_env,
        "components": {},
    }

    if await get_brain_transport().health_check():
        health_status["components"]["brain_backend"] = {
            "status": "healthy",
            "backend": settings.brain_backend,
        }
    else:
        logger.warning("Brain backend health check failed", extra={"backend": settings.brain_backend})
        health_status["status"] = "degraded"
        health_status["components"]["brain_backend"] = {
            "status": "unhealthy",
            "backend": settings.brain_backend,
            "message": f"{settings.rest_url} did not answer",
        }

    health_status["components"]["sessions"] = {"open": len(get_session_registry())}
    health_status["components"]["logging"] = {"counts": LoggingConfig.get_metrics()}
    return health_status
